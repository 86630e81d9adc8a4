from __future__ import annotations

from functools import lru_cache
from pathlib import Path

SQL_DIR = Path(__file__).with_name("sql")


@lru_cache(maxsize=None)
def load_sql(name: str) -> str:
    """Read a packaged query by file name, e.g. `get_cache_entry.sql`."""
    path = SQL_DIR / name
    if path.suffix != ".sql" or not path.is_file():
        raise FileNotFoundError(f"unknown SQL statement file: {name}")
    return path.read_text(encoding="utf-8").strip()
