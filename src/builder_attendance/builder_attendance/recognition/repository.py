from __future__ import annotations

from typing import Protocol, Sequence

from .model import FaceSignature


class SignatureRepository(Protocol):
    async def list_all(self) -> Sequence[FaceSignature]:
        """Every enrolled signature of every active builder."""

        raise NotImplementedError

    async def list_for_builder(self, builder_id: str) -> Sequence[FaceSignature]:
        raise NotImplementedError

    async def replace_for_builder(self, builder_id: str, vectors: Sequence[Sequence[float]]) -> int:
        """Atomically replace all signatures of ``builder_id``. Returns the number stored."""

        raise NotImplementedError
