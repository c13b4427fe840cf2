"""
Program Catalog Protocol (Interface)
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import List, Optional, Protocol, Sequence, Tuple


@dataclass(frozen=True)
class Program:
    """A sellable bundle of courses."""
    id: str
    title: str
    course_ids: Tuple[str, ...] = ()
    stripe_first_price_id: Optional[str] = None


class ProgramCatalog(Protocol):
    async def get_program(self, program_id: str) -> Optional[Program]:
        ...

    async def get_course_titles(self, course_ids: Sequence[str]) -> List[str]:
        """Titles in the same order; unknown ids render as ``Unknown Course (ID: ...)``."""
        ...
