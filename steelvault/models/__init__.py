# steelvault/models/__init__.py

from .base import db, utcnow

# Client must be imported before the tables that reference it.
from .client import Client
from .user import User
from .project import Project, ProjectPackage, ProjectRFI

__all__ = [
    'db',
    'utcnow',
    'Client',
    'User',
    'Project',
    'ProjectPackage',
    'ProjectRFI',
]
