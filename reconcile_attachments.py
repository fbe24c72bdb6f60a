"""List (and optionally delete) attachments left behind by failed inserts.

    python reconcile_attachments.py            # report only
    python reconcile_attachments.py --delete   # remove orphans
    python reconcile_attachments.py --min-age 86400
"""
from __future__ import annotations

import argparse
import asyncio

from app.config import get_settings
from app.database import build_engine, build_sessionmaker, init_models
from app.log import configure_logging
from services.reconcile import DEFAULT_MIN_AGE_SECONDS, delete_attachments, find_orphaned_attachments
from services.repository import ApplicationRepository
from services.storage import build_storage


def _parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    p = argparse.ArgumentParser(description=__doc__.splitlines()[0])
    p.add_argument("--delete", action="store_true", help="delete orphaned attachments after listing them")
    p.add_argument(
        "--min-age",
        type=float,
        default=DEFAULT_MIN_AGE_SECONDS,
        help="only consider attachments uploaded at least this many seconds ago (default: %(default)s)",
    )
    return p.parse_args(argv)


async def main(argv: list[str] | None = None) -> int:
    args = _parse_args(argv)
    settings = get_settings()
    configure_logging(settings)

    engine = build_engine(settings)
    try:
        await init_models(engine)
        repository = ApplicationRepository(build_sessionmaker(engine), timeout=settings.database_timeout_seconds)
        storage = build_storage(settings)
        storage.ensure_configured()

        orphans = await find_orphaned_attachments(storage, repository, min_age_seconds=args.min_age)
        for path in orphans:
            print(path)
        if args.delete and orphans:
            await delete_attachments(storage, orphans)
    finally:
        await engine.dispose()
    return 0


if __name__ == "__main__":
    raise SystemExit(asyncio.run(main()))
