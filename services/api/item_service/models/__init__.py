"""SQLAlchemy ORM models.

Models represent database tables:
- items: the managed resource
"""

from item_service.models.item import Item

__all__ = ["Item"]
