"""
Tenant Store Protocol (Interface)

Document store holding tenants, locations, profiles, programs and purchase
records. Only single-document writes are atomic.
"""
from __future__ import annotations

from typing import Any, Dict, Final, List, Optional, Protocol


COMPANIES: Final[str] = "companies"
LOCATIONS: Final[str] = "locations"
USERS: Final[str] = "users"
PROGRAMS: Final[str] = "programs"
COURSES: Final[str] = "courses"
CUSTOMER_PURCHASES: Final[str] = "customer_purchases"


class TenantStore(Protocol):
    """Adapters raise StoreError on any failure."""

    async def create(self, collection: str, data: Dict[str, Any]) -> str:
        """Insert a document and return its minted id."""
        ...

    async def get(self, collection: str, doc_id: str) -> Optional[Dict[str, Any]]:
        """Fetch a document, or None if absent."""
        ...

    async def update(self, collection: str, doc_id: str, fields: Dict[str, Any]) -> None:
        """Merge ``fields`` into an existing document."""
        ...

    async def delete(self, collection: str, doc_id: str) -> None:
        """Hard-delete a document. Deleting a missing document is a no-op."""
        ...

    async def find(self, collection: str, **filters: Any) -> List[Dict[str, Any]]:
        """Documents whose fields equal every filter; each dict includes ``id``."""
        ...
