from __future__ import annotations

from typing import Optional, Sequence

from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, fetchall, fetchone, run_blocking
from .model import Builder
from .repository import BuilderRepository


def _to_builder(r: dict) -> Builder:
    return Builder(
        builder_id=str(r["builder_id"]),
        display_name=r["display_name"],
        builder_code=r.get("builder_code"),
        cohort=r.get("cohort") or "",
        archived_at=r.get("archived_at"),
    )


class MySQLBuilderRepository(BuilderRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    async def list_roster(self, *, cohort: Optional[str] = None) -> Sequence[Builder]:
        return await run_blocking(self._list_roster, cohort)

    async def get_by_id(self, builder_id: str) -> Optional[Builder]:
        return await run_blocking(self._get_by_id, builder_id)

    def _list_roster(self, cohort: Optional[str]) -> Sequence[Builder]:
        clauses = ["archived_at IS NULL"]
        params: list[object] = []
        if cohort:
            clauses.append("cohort=%s")
            params.append(cohort)

        where = " AND ".join(clauses)

        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                SELECT builder_id, display_name, builder_code, cohort, archived_at
                FROM builders
                WHERE {where}
                ORDER BY display_name ASC
                """,
                tuple(params),
            )
            return [_to_builder(r) for r in fetchall(cur)]

    def _get_by_id(self, builder_id: str) -> Optional[Builder]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                SELECT builder_id, display_name, builder_code, cohort, archived_at
                FROM builders
                WHERE builder_id=%s
                """,
                (builder_id,),
            )
            r = fetchone(cur)
            return _to_builder(r) if r else None
