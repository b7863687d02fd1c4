"""Search history database model."""
from typing import TYPE_CHECKING

from sqlalchemy import Column, Integer, DateTime, ForeignKey
from sqlalchemy.orm import relationship

from image_similarity.core.database import Base

if TYPE_CHECKING:
    from .image import Image


class SearchHistory(Base):
    """One similarity search against a stored image."""

    __tablename__ = "search_history"
    # Cleared ids must not come back after DELETE
    __table_args__ = {"sqlite_autoincrement": True}

    id = Column(Integer, primary_key=True, autoincrement=True)
    source_image_id = Column(
        Integer,
        ForeignKey("images.id", ondelete="RESTRICT"),
        nullable=False,
        index=True
    )
    result_count = Column(Integer, nullable=False)
    searched_at = Column(DateTime(timezone=True), nullable=False, index=True)

    # Relationships
    source_image = relationship("Image", back_populates="searches")

    def __repr__(self) -> str:
        return f"<SearchHistory(id={self.id}, source_image_id={self.source_image_id})>"
