from __future__ import annotations

import argparse
import asyncio

from petal_economy.core.clock import utc_now
from petal_economy.core.config import get_settings
from petal_economy.core.logging import configure_logging
from petal_economy.db.session import SessionLocal
from petal_economy.economy.config import seed_default_config


def _parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Insert default economy config blobs for absent keys")
    parser.add_argument("--updated-by", default="system")
    return parser.parse_args()


async def _run() -> int:
    args = _parse_args()
    configure_logging(get_settings().log_level)
    async with SessionLocal.begin() as session:
        created = await seed_default_config(session, now_utc=utc_now(), updated_by=args.updated_by)
    print(f"created={','.join(created) or '-'}")  # noqa: T201
    return 0


def main() -> int:
    return asyncio.run(_run())


if __name__ == "__main__":
    raise SystemExit(main())
