"""ProgramCatalog read from the programs/courses collections of a TenantStore."""
from __future__ import annotations

from typing import List, Optional, Sequence

from provisioning.domain.protocols.program_catalog import Program
from provisioning.domain.protocols.tenant_store import COURSES, PROGRAMS, TenantStore


class DocumentProgramCatalog:
    def __init__(self, store: TenantStore) -> None:
        self.store = store

    async def get_program(self, program_id: str) -> Optional[Program]:
        doc = await self.store.get(PROGRAMS, program_id)
        if doc is None or doc.get("is_deleted"):
            return None
        return Program(
            id=program_id,
            title=doc.get("title") or "",
            course_ids=tuple(doc.get("course_ids") or ()),
            stripe_first_price_id=doc.get("stripe_first_price_id"),
        )

    async def get_course_titles(self, course_ids: Sequence[str]) -> List[str]:
        titles: List[str] = []
        for course_id in course_ids:
            doc = await self.store.get(COURSES, course_id)
            titles.append(doc["title"] if doc and doc.get("title") else f"Unknown Course (ID: {course_id})")
        return titles
