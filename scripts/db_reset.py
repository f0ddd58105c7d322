"""Development helper to drop and recreate the trend pipeline tables."""

from __future__ import annotations

import argparse
import asyncio

from trendpipe.core.database import close_db, recreate_schema
from trendpipe.core.logging import setup_logging


async def _reset_tables() -> None:
    try:
        await recreate_schema()
    finally:
        await close_db()


def main() -> int:
    parser = argparse.ArgumentParser(description=__doc__)
    parser.add_argument("--yes", action="store_true", help="Confirm dropping all pipeline tables.")
    args = parser.parse_args()
    if not args.yes:
        print("Refusing to reset without --yes")
        return 1
    setup_logging()
    asyncio.run(_reset_tables())
    print("Trend pipeline tables reset complete")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
