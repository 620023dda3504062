import sqlite3

from ..constants import SCHEMA_VERSION, TABLE_SCHEMA_VERSION
from ..errors import ValidationError
from .transactions import immediate_tx


def _major(version: str) -> int:
    try:
        return int(str(version).split(".", 1)[0])
    except ValueError:
        raise ValidationError(f"Unreadable schema version {version!r}.") from None


def is_compatible(version: str) -> bool:
    """Same major as this build: the stores and their columns line up."""
    return _major(version) == _major(SCHEMA_VERSION)


def stored_version(conn: sqlite3.Connection) -> str | None:
    row = conn.execute(f"SELECT version FROM {TABLE_SCHEMA_VERSION} WHERE id=1").fetchone()
    return row[0] if row else None


def stamp_version(conn: sqlite3.Connection, version: str = SCHEMA_VERSION) -> None:
    with immediate_tx(conn):
        conn.execute(
            f"INSERT INTO {TABLE_SCHEMA_VERSION}(id, version) VALUES (1, ?) "
            "ON CONFLICT(id) DO UPDATE SET version=excluded.version",
            (version,),
        )


def ensure_version(conn: sqlite3.Connection) -> str:
    """
    Stamp a fresh database with SCHEMA_VERSION and return the stored version.
    A database written by a different major version is refused.
    """
    current = stored_version(conn)
    if current is None:
        stamp_version(conn)
        return SCHEMA_VERSION
    if not is_compatible(current):
        raise ValidationError(
            f"Database schema {current} is not supported by this build ({SCHEMA_VERSION}).",
            {"stored": current, "expected": SCHEMA_VERSION},
        )
    return current
