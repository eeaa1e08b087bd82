"""
Routes package for the SteelVault dashboard API.
Each module exposes one Flask blueprint; ``create_app`` registers them from
its ``BLUEPRINTS`` list.
"""
