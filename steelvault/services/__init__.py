"""Domain services: auth gate, schema-tolerant data access and dashboard metrics."""
