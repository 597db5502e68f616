from __future__ import annotations

import asyncio
import json
from contextlib import contextmanager
from typing import Any, Callable, Dict, List, Optional, Sequence, TypeVar

import mysql.connector

from ..core.exceptions import DatastoreError
from .connection import DatabaseConnection

T = TypeVar("T")


@contextmanager
def db_cursor(conn_factory: DatabaseConnection, *, dictionary: bool = True):
    """Open a connection + cursor, commit on success and roll back on failure.

    Any ``mysql.connector.Error`` is re-raised as ``DatastoreError``.
    """
    try:
        conn = conn_factory.connect()
    except mysql.connector.Error as e:
        raise DatastoreError(f"Cannot connect to datastore: {e}") from e

    try:
        cur = conn.cursor(dictionary=dictionary)
        try:
            yield conn, cur
            conn.commit()
        finally:
            cur.close()
    except mysql.connector.Error as e:
        conn.rollback()
        raise DatastoreError(str(e)) from e
    except Exception:
        conn.rollback()
        raise
    finally:
        conn.close()


async def run_blocking(fn: Callable[..., T], *args: Any, **kwargs: Any) -> T:
    """Run a blocking repository call on a worker thread."""
    return await asyncio.to_thread(fn, *args, **kwargs)


def fetchone(cur) -> Optional[Dict[str, Any]]:
    row = cur.fetchone()
    return row if row else None


def fetchall(cur) -> List[Dict[str, Any]]:
    rows = cur.fetchall()
    return list(rows or [])


def encode_vector(vector: Sequence[float]) -> str:
    return json.dumps([float(v) for v in vector])


def decode_vector(value: Any) -> tuple[float, ...]:
    """Decode a JSON column into a float tuple.

    mysql-connector can return JSON as ``str``, ``bytes`` or an already decoded list.
    """

    if value is None:
        return ()
    if isinstance(value, (bytes, bytearray)):
        value = value.decode("utf-8")
    if isinstance(value, str):
        value = json.loads(value)
    if not isinstance(value, (list, tuple)):
        raise TypeError(f"Unsupported signature column type: {type(value)!r}")
    return tuple(float(v) for v in value)
