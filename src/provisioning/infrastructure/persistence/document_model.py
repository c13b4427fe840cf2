"""
Document ORM Model
Maps to the documents table (one row per stored document, any collection)
"""
from typing import Any, Dict

from sqlalchemy import JSON, Boolean, Index, String
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import Mapped, mapped_column

from shared.infrastructure.database.base_model import Base


class DocumentModel(Base):
    """
    Schemaless document row.

    ``collection`` plays the role of a document-store collection (companies,
    locations, users, programs, courses, customer_purchases).
    """

    __tablename__ = "documents"
    __table_args__ = (Index("ix_documents_collection_live", "collection", "is_deleted"),)

    id: Mapped[str] = mapped_column(String(36), primary_key=True)
    collection: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    is_deleted: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    data: Mapped[Dict[str, Any]] = mapped_column(
        JSON().with_variant(JSONB(), "postgresql"),
        nullable=False,
        default=dict,
    )

    def __repr__(self) -> str:
        return f"<DocumentModel(collection={self.collection}, id={self.id})>"
