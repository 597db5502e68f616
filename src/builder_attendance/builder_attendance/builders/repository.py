from __future__ import annotations

from typing import Optional, Protocol, Sequence

from .model import Builder


class BuilderRepository(Protocol):
    async def list_roster(self, *, cohort: Optional[str] = None) -> Sequence[Builder]:
        """Active (non-archived) builders, optionally limited to one cohort."""

        raise NotImplementedError

    async def get_by_id(self, builder_id: str) -> Optional[Builder]:
        raise NotImplementedError
