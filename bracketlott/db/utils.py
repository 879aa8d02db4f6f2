from pathlib import Path

from sqlalchemy.engine import Engine

SQLITE_DRIVER_PREFIXES = ("sqlite:///./", "sqlite+pysqlite:///./")


def resolve_sqlite_url(url: str, project_root: Path) -> str:
    """Resolve a relative SQLite URL against ``project_root``.

    ``sqlite:///./lottery.db`` becomes ``sqlite:////abs/path/lottery.db``; the
    driver spelling is preserved. Other URL forms (including ``:memory:``) are
    returned unchanged.
    """
    for prefix in SQLITE_DRIVER_PREFIXES:
        if url.startswith(prefix):
            rel = url[len(prefix) :]
            scheme = prefix[: -len("./")]
            return f"{scheme}{(project_root / rel).resolve()}"
    return url


def create_schema(engine: Engine) -> None:
    """Create every lottery table on ``engine`` (tests and local demos only).

    Real databases are managed through Alembic migrations.
    """
    from ..models import Base

    Base.metadata.create_all(engine)


def table_names(engine: Engine) -> list[str]:
    """Return the sorted table names currently present on ``engine``."""
    from sqlalchemy import inspect

    return sorted(inspect(engine).get_table_names())
