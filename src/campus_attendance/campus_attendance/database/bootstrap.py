from __future__ import annotations

import logging
import re
from pathlib import Path
from typing import Iterable, Iterator

from werkzeug.security import generate_password_hash

from .connection import DatabaseConnection, DBConfig
from .mysql_base import db_cursor, fetchone

logger = logging.getLogger(__name__)

# (full_name, username, password, role)
DEMO_USERS = (
    ("Admin Demo", "admin", "admin123", "admin"),
    ("Dr. Faculty Demo", "faculty", "faculty123", "faculty"),
    ("Student One", "student1", "student123", "student"),
    ("Student Two", "student2", "student123", "student"),
)

# (username, course_code)
DEMO_ENROLLMENTS = (
    ("student1", "CS101"),
    ("student1", "MA201"),
    ("student2", "CS101"),
)

_CREATE_DB_OR_USE = re.compile(r"(?im)^\s*(CREATE\s+DATABASE|USE)\b.*?;\s*$")


def _strip_database_statements(sql: str) -> str:
    # The target database comes from DB_CONFIG, not from the file.
    return _CREATE_DB_OR_USE.sub("", sql)


def iter_sql_statements(sql: str) -> Iterator[str]:
    """Split a script on ``;`` outside quoted strings; ``--`` line comments are dropped."""
    buf: list[str] = []
    quote = None
    escape = False
    lines = (line for line in sql.splitlines(keepends=True) if not line.lstrip().startswith("--"))

    for ch in "".join(lines):
        if escape:
            escape = False
        elif ch == "\\":
            escape = True
        elif quote:
            if ch == quote:
                quote = None
        elif ch in ("'", '"'):
            quote = ch
        elif ch == ";":
            stmt = "".join(buf).strip()
            buf.clear()
            if stmt:
                yield stmt
            continue
        buf.append(ch)

    tail = "".join(buf).strip()
    if tail:
        yield tail


def _execute_all(conn_factory: DatabaseConnection, statements: Iterable[str]) -> int:
    count = 0
    with db_cursor(conn_factory, dictionary=False) as (_, cur):
        for stmt in statements:
            cur.execute(stmt)
            count += 1
    return count


def ensure_database_exists(db_config: dict) -> None:
    config = DBConfig.from_dict(db_config)
    conn = DatabaseConnection(config).connect(with_database=False)
    try:
        cur = conn.cursor()
        cur.execute(
            f"CREATE DATABASE IF NOT EXISTS `{config.database}` CHARACTER SET utf8mb4 COLLATE utf8mb4_unicode_ci"
        )
        conn.commit()
    finally:
        conn.close()


def apply_sql_file(db_config: dict, *, path: str | Path) -> int:
    sql = _strip_database_statements(Path(path).read_text(encoding="utf-8"))
    count = _execute_all(DatabaseConnection(DBConfig.from_dict(db_config)), iter_sql_statements(sql))
    logger.info("Applied %s statements from %s", count, Path(path).name)
    return count


def apply_schema(db_config: dict, *, schema_path: str | Path) -> None:
    ensure_database_exists(db_config)
    apply_sql_file(db_config, path=schema_path)


def apply_seed_sql(db_config: dict, *, seed_path: str | Path) -> None:
    apply_sql_file(db_config, path=seed_path)


def ensure_demo_data(db_config: dict) -> None:
    """Upsert demo users (hashed passwords) and their enrollments."""

    conn_factory = DatabaseConnection(DBConfig.from_dict(db_config))
    with db_cursor(conn_factory) as (_, cur):
        for full_name, username, password, role in DEMO_USERS:
            cur.execute(
                """
                INSERT INTO users (full_name, username, password_hash, role, is_active)
                VALUES (%s, %s, %s, %s, 1) AS new
                ON DUPLICATE KEY UPDATE
                    full_name=new.full_name,
                    password_hash=new.password_hash,
                    role=new.role,
                    is_active=1
                """,
                (full_name, username, generate_password_hash(password), role),
            )

        for username, course_code in DEMO_ENROLLMENTS:
            cur.execute("SELECT user_id FROM users WHERE username=%s", (username,))
            user = fetchone(cur)
            cur.execute("SELECT course_id FROM courses WHERE course_code=%s", (course_code,))
            course = fetchone(cur)
            if not user or not course:
                raise RuntimeError(f"Missing seed row for enrollment {username} -> {course_code}")
            cur.execute(
                """
                INSERT INTO enrollments (student_id, course_id, is_active)
                VALUES (%s, %s, 1)
                ON DUPLICATE KEY UPDATE is_active=1
                """,
                (int(user["user_id"]), int(course["course_id"])),
            )

    logger.info("Demo data ready (%s users, %s enrollments)", len(DEMO_USERS), len(DEMO_ENROLLMENTS))


def list_tables(db_config: dict) -> list[str]:
    with db_cursor(DatabaseConnection(DBConfig.from_dict(db_config)), dictionary=False) as (_, cur):
        cur.execute("SHOW TABLES")
        return [row[0] for row in cur.fetchall()]
