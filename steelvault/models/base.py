# steelvault/models/base.py

from datetime import datetime, timezone
from flask_sqlalchemy import SQLAlchemy

db = SQLAlchemy()


def utcnow():
    """Naive UTC timestamp, the way the hosted tables store createdAt/updatedAt."""
    return datetime.now(timezone.utc).replace(tzinfo=None)
