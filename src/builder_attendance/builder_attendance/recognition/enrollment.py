from __future__ import annotations

import logging
from typing import Sequence

import numpy as np

from ..builders.repository import BuilderRepository
from ..core.exceptions import MalformedSignatureError, ValidationError
from .matcher import as_vector
from .repository import SignatureRepository

logger = logging.getLogger(__name__)


def normalize(vector: Sequence[float]) -> tuple[float, ...]:
    """Scale a signature to unit length."""
    v = as_vector(vector)
    norm = float(np.linalg.norm(v))
    if norm == 0.0:
        raise MalformedSignatureError("Signature has zero magnitude")
    return tuple(float(x) for x in v / norm)


class SignatureEnrollmentService:
    """Registers face signatures; re-registration replaces a builder's set wholesale."""

    def __init__(self, signatures: SignatureRepository, builders: BuilderRepository):
        self._signatures = signatures
        self._builders = builders

    async def register(self, builder_id: str, vectors: Sequence[Sequence[float]]) -> int:
        if not vectors:
            raise ValidationError("At least one signature is required")

        normalized = [normalize(v) for v in vectors]
        sizes = {len(v) for v in normalized}
        if len(sizes) > 1:
            raise MalformedSignatureError(f"Signatures must share one length, got {sorted(sizes)}")

        builder = await self._builders.get_by_id(builder_id)
        if not builder or builder.is_archived:
            raise ValidationError(f"Builder {builder_id} is not enrolled")

        stored = await self._signatures.replace_for_builder(builder_id, normalized)
        logger.info("Registered %d signatures (%d-d) for %s", stored, sizes.pop(), builder_id)
        return stored
