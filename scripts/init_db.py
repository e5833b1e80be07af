#!/usr/bin/env python3
"""
Create (or recreate) the marketplace schema.

Settings come from marketplace_config.get_settings(): the packaged
defaults.yaml, $MARKETPLACE_CONFIG, or --config; --db-url overrides the
database URL.

Usage:
  python3 scripts/init_db.py [--config PATH] [--db-url URL] [--drop]
"""

import argparse
import sys
from dataclasses import replace
from pathlib import Path

ROOT = Path(__file__).resolve().parent.parent
sys.path.insert(0, str(ROOT))


def _parse_args() -> argparse.Namespace:
    p = argparse.ArgumentParser(description="Create the marketplace database schema")
    p.add_argument("--config", default=None, help="Settings YAML file")
    p.add_argument("--db-url", default=None, help="Database URL (overrides settings)")
    p.add_argument(
        "--drop",
        action="store_true",
        help="Drop all marketplace tables before creating them",
    )
    return p.parse_args()


def main() -> int:
    args = _parse_args()

    from marketplace_config import get_settings
    from marketplace_kernel.db.engine import (
        create_tables,
        drop_tables,
        init_engine_from_settings,
    )
    from marketplace_kernel.logging_config import configure_logging

    settings = get_settings(args.config)
    if args.db_url:
        settings = replace(settings, database_url=args.db_url)
    configure_logging(level=settings.log_level)

    engine = init_engine_from_settings(settings)
    if args.drop:
        drop_tables(engine)
        print("  Dropped marketplace tables")
    create_tables(engine)
    print(f"  Schema ready on {engine.url.render_as_string(hide_password=True)}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
