"""
SQLAlchemy TenantStore
Document store over the generic documents table
"""
from __future__ import annotations

from typing import Any, Dict, List, Optional
from uuid import uuid4

from sqlalchemy import delete, select
from sqlalchemy.exc import SQLAlchemyError

from shared.infrastructure.database.session import DatabaseSessionFactory
from shared.infrastructure.observability.logger import get_logger

from provisioning.domain.exceptions import StoreError
from provisioning.infrastructure.persistence.document_model import DocumentModel

logger = get_logger(__name__)


class SqlAlchemyTenantStore:
    """
    TenantStore implementation.

    Every call runs in its own short session and commits immediately, so a
    single document write is atomic and nothing spans documents.
    """

    def __init__(self, sessions: DatabaseSessionFactory) -> None:
        self.sessions = sessions

    async def create(self, collection: str, data: Dict[str, Any]) -> str:
        doc_id = uuid4().hex
        try:
            async with self.sessions.get_session() as session:
                session.add(
                    DocumentModel(
                        id=doc_id,
                        collection=collection,
                        is_deleted=bool(data.get("is_deleted", False)),
                        data=_strip_id(data),
                    )
                )
                await session.commit()
        except SQLAlchemyError as e:
            logger.error("store_create_failed", collection=collection, error=str(e))
            raise StoreError(f"Failed to create {collection} document") from e
        logger.debug("store_document_created", collection=collection, doc_id=doc_id)
        return doc_id

    async def get(self, collection: str, doc_id: str) -> Optional[Dict[str, Any]]:
        try:
            async with self.sessions.get_session() as session:
                model = await session.get(DocumentModel, doc_id)
        except SQLAlchemyError as e:
            logger.error("store_get_failed", collection=collection, doc_id=doc_id, error=str(e))
            raise StoreError(f"Failed to read {collection}/{doc_id}") from e
        if model is None or model.collection != collection:
            return None
        return dict(model.data)

    async def update(self, collection: str, doc_id: str, fields: Dict[str, Any]) -> None:
        try:
            async with self.sessions.get_session() as session:
                model = await session.get(DocumentModel, doc_id)
                if model is None or model.collection != collection:
                    raise StoreError(f"{collection}/{doc_id} does not exist", retryable=False)
                # Reassign so the JSON column is flagged dirty.
                model.data = {**model.data, **_strip_id(fields)}
                if "is_deleted" in fields:
                    model.is_deleted = bool(fields["is_deleted"])
                await session.commit()
        except SQLAlchemyError as e:
            logger.error("store_update_failed", collection=collection, doc_id=doc_id, error=str(e))
            raise StoreError(f"Failed to update {collection}/{doc_id}") from e

    async def delete(self, collection: str, doc_id: str) -> None:
        try:
            async with self.sessions.get_session() as session:
                await session.execute(
                    delete(DocumentModel).where(
                        DocumentModel.collection == collection,
                        DocumentModel.id == doc_id,
                    )
                )
                await session.commit()
        except SQLAlchemyError as e:
            logger.error("store_delete_failed", collection=collection, doc_id=doc_id, error=str(e))
            raise StoreError(f"Failed to delete {collection}/{doc_id}") from e
        logger.debug("store_document_deleted", collection=collection, doc_id=doc_id)

    async def find(self, collection: str, **filters: Any) -> List[Dict[str, Any]]:
        stmt = select(DocumentModel).where(DocumentModel.collection == collection)
        if "is_deleted" in filters:
            stmt = stmt.where(DocumentModel.is_deleted.is_(bool(filters["is_deleted"])))
        try:
            async with self.sessions.get_session() as session:
                rows = (await session.execute(stmt)).scalars().all()
        except SQLAlchemyError as e:
            logger.error("store_find_failed", collection=collection, error=str(e))
            raise StoreError(f"Failed to query {collection}") from e

        # Remaining filters compare JSON fields in Python to stay dialect neutral.
        json_filters = {k: v for k, v in filters.items() if k != "is_deleted"}
        return [
            {"id": row.id, **row.data}
            for row in rows
            if all(row.data.get(k) == v for k, v in json_filters.items())
        ]


def _strip_id(data: Dict[str, Any]) -> Dict[str, Any]:
    return {k: v for k, v in data.items() if k != "id"}
