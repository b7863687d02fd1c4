"""Image database model."""
from typing import TYPE_CHECKING

from sqlalchemy import Column, String, Integer, BigInteger, DateTime, JSON, LargeBinary
from sqlalchemy.orm import relationship

from image_similarity.core.database import Base

if TYPE_CHECKING:
    from .search_history import SearchHistory


class Image(Base):
    """Image model holding metadata, feature vector and display bytes."""

    __tablename__ = "images"
    # Ids are never reused, even on SQLite
    __table_args__ = {"sqlite_autoincrement": True}

    id = Column(Integer, primary_key=True, autoincrement=True)
    filename = Column(String(255), nullable=False)
    mime_type = Column(String(50), nullable=False)
    width = Column(Integer, nullable=False)
    height = Column(Integer, nullable=False)
    size = Column(BigInteger, nullable=False)
    source = Column(String(100), nullable=False)
    vector_dimension = Column(Integer, nullable=False)
    feature_vector = Column(JSON, nullable=False)
    image_data = Column(LargeBinary, nullable=False)
    uploaded_at = Column(DateTime(timezone=True), nullable=False)

    # Relationships
    searches = relationship("SearchHistory", back_populates="source_image")

    def __repr__(self) -> str:
        return f"<Image(id={self.id}, filename='{self.filename}', dim={self.vector_dimension})>"
