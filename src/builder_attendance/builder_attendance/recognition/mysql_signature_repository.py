from __future__ import annotations

from typing import Sequence

from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, decode_vector, encode_vector, fetchall, run_blocking
from .model import FaceSignature
from .repository import SignatureRepository


def _to_signature(r: dict) -> FaceSignature:
    return FaceSignature(
        builder_id=str(r["builder_id"]),
        vector=decode_vector(r["vector"]),
        signature_id=int(r["signature_id"]),
    )


class MySQLSignatureRepository(SignatureRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    async def list_all(self) -> Sequence[FaceSignature]:
        return await run_blocking(self._list_all)

    async def list_for_builder(self, builder_id: str) -> Sequence[FaceSignature]:
        return await run_blocking(self._list_for_builder, builder_id)

    async def replace_for_builder(self, builder_id: str, vectors: Sequence[Sequence[float]]) -> int:
        return await run_blocking(self._replace_for_builder, builder_id, vectors)

    def _list_all(self) -> Sequence[FaceSignature]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                SELECT fs.signature_id, fs.builder_id, fs.vector
                FROM face_signatures fs
                JOIN builders b ON b.builder_id = fs.builder_id
                WHERE b.archived_at IS NULL
                ORDER BY fs.signature_id ASC
                """
            )
            return [_to_signature(r) for r in fetchall(cur)]

    def _list_for_builder(self, builder_id: str) -> Sequence[FaceSignature]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                SELECT signature_id, builder_id, vector
                FROM face_signatures
                WHERE builder_id=%s
                ORDER BY signature_id ASC
                """,
                (builder_id,),
            )
            return [_to_signature(r) for r in fetchall(cur)]

    def _replace_for_builder(self, builder_id: str, vectors: Sequence[Sequence[float]]) -> int:
        # Single transaction: db_cursor commits only if every statement succeeds.
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute("DELETE FROM face_signatures WHERE builder_id=%s", (builder_id,))
            if vectors:
                cur.executemany(
                    "INSERT INTO face_signatures(builder_id, vector) VALUES(%s,%s)",
                    [(builder_id, encode_vector(v)) for v in vectors],
                )
            return len(vectors)
