"""Upgrade the configured database to the latest migration and list its tables."""

from __future__ import annotations

from pathlib import Path

from alembic import command
from alembic.config import Config

from bracketlott.db.engine import make_engine
from bracketlott.db.utils import table_names

PROJECT_ROOT = Path(__file__).resolve().parents[1]


def alembic_config() -> Config:
    cfg = Config(str(PROJECT_ROOT / "alembic.ini"))
    cfg.set_main_option("script_location", str(PROJECT_ROOT / "alembic"))
    return cfg


def main(target_revision: str = "head") -> None:
    command.upgrade(alembic_config(), target_revision)
    engine = make_engine()
    try:
        print("Current tables:", ", ".join(table_names(engine)))
    finally:
        engine.dispose()


if __name__ == "__main__":
    main()
