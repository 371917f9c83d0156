# Models package init
"""
ORM models. Importing this package registers every table on Base.metadata.
"""

from notecraft.models.user import User
from notecraft.models.note import Note

__all__ = ["User", "Note"]
