from __future__ import annotations

from pathlib import Path

from builder_attendance.database.bootstrap import _strip_comments, _strip_create_db_and_use, iter_sql_statements

SCHEMA = Path(__file__).resolve().parents[1] / "database" / "schema.sql"


def test_schema_splits_into_table_statements():
    sql = _strip_comments(_strip_create_db_and_use(SCHEMA.read_text(encoding="utf-8")))

    statements = list(iter_sql_statements(sql))

    assert len(statements) == 4
    assert all(s.upper().startswith("CREATE TABLE IF NOT EXISTS") for s in statements)


def test_semicolon_inside_quotes_does_not_split():
    sql = "INSERT INTO t VALUES ('a;b'); SELECT \"x;y\";"

    assert list(iter_sql_statements(sql)) == ["INSERT INTO t VALUES ('a;b')", 'SELECT "x;y"']
