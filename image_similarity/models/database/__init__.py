"""SQLAlchemy ORM models."""
from .image import Image
from .search_history import SearchHistory

__all__ = [
    "Image",
    "SearchHistory",
]
