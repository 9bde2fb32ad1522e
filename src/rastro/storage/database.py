import json
import sqlite3
from contextlib import contextmanager
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, TypeVar

from pydantic import BaseModel

from rastro.config import settings

T = TypeVar("T", bound=BaseModel)

TABLES = ("shipments", "shipment_customers", "message_templates", "couriers", "notifications")


def get_db_path() -> Path:
    return Path(settings.data_dir) / "rastro.db"


def init_db() -> None:
    """Initialize database with required tables."""
    with get_connection() as conn:
        for table in TABLES:
            conn.execute(f"""
                CREATE TABLE IF NOT EXISTS {table} (
                    id TEXT PRIMARY KEY,
                    data JSON NOT NULL,
                    created_at TEXT NOT NULL,
                    updated_at TEXT NOT NULL
                )
            """)
        conn.commit()


@contextmanager
def get_connection():
    """Get a database connection."""
    db_path = get_db_path()
    db_path.parent.mkdir(parents=True, exist_ok=True)
    conn = sqlite3.connect(db_path)
    conn.row_factory = sqlite3.Row
    try:
        yield conn
    finally:
        conn.close()


def save(table: str, model: BaseModel) -> None:
    """Insert or replace a Pydantic model in the database."""
    now = datetime.now(timezone.utc).isoformat()
    data = model.model_dump(mode="json", by_alias=True)
    model_id = data.get("id")

    with get_connection() as conn:
        existing = conn.execute(
            f"SELECT id FROM {table} WHERE id = ?", (model_id,)
        ).fetchone()

        if existing:
            conn.execute(
                f"UPDATE {table} SET data = ?, updated_at = ? WHERE id = ?",
                (json.dumps(data), now, model_id),
            )
        else:
            conn.execute(
                f"INSERT INTO {table} (id, data, created_at, updated_at) VALUES (?, ?, ?, ?)",
                (model_id, json.dumps(data), now, now),
            )
        conn.commit()


def load(table: str, model_id: str, model_class: type[T]) -> T | None:
    """Load a model by ID."""
    with get_connection() as conn:
        row = conn.execute(
            f"SELECT data FROM {table} WHERE id = ?", (model_id,)
        ).fetchone()
        if row:
            return model_class.model_validate_json(row["data"])
        return None


def load_all(table: str, model_class: type[T]) -> list[T]:
    """Load all models from a table, newest first."""
    with get_connection() as conn:
        rows = conn.execute(
            f"SELECT data FROM {table} ORDER BY json_extract(data, '$.created_at') DESC"
        ).fetchall()
        return [model_class.model_validate_json(row["data"]) for row in rows]


def find(table: str, model_class: type[T], limit: int | None = None, **filters: Any) -> list[T]:
    """Load models whose JSON fields match ``filters``, newest first.

    A ``None`` filter matches a null or missing field, a list/tuple/set matches
    any of its values, anything else matches by equality.
    """
    clauses: list[str] = []
    params: list[Any] = []
    for field, value in filters.items():
        column = f"json_extract(data, '$.{field}')"
        if value is None:
            clauses.append(f"{column} IS NULL")
        elif isinstance(value, (list, tuple, set)):
            placeholders = ", ".join("?" for _ in value)
            clauses.append(f"{column} IN ({placeholders})")
            params.extend(value)
        else:
            clauses.append(f"{column} = ?")
            params.append(value)

    query = f"SELECT data FROM {table}"
    if clauses:
        query += " WHERE " + " AND ".join(clauses)
    query += " ORDER BY json_extract(data, '$.created_at') DESC"
    if limit is not None:
        query += " LIMIT ?"
        params.append(limit)

    with get_connection() as conn:
        rows = conn.execute(query, params).fetchall()
        return [model_class.model_validate_json(row["data"]) for row in rows]


def find_one(table: str, model_class: type[T], **filters: Any) -> T | None:
    """Load the newest model matching ``filters``."""
    found = find(table, model_class, limit=1, **filters)
    return found[0] if found else None

