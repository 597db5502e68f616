from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Optional


@dataclass(frozen=True)
class Builder:
    """Domain entity: a person enrolled in the attendance system."""

    builder_id: str
    display_name: str
    builder_code: Optional[str] = None
    cohort: str = ""
    archived_at: Optional[datetime] = None

    @property
    def is_archived(self) -> bool:
        return self.archived_at is not None
