"""Find attachments that no application record points at."""
from __future__ import annotations

import re
import time

import structlog

from app.postings import SLOTS
from services.repository import ApplicationRepository
from services.storage import AttachmentStorage

logger = structlog.get_logger()

# A submission uploads first and inserts its row afterwards; anything
# younger than this may still be waiting for its record.
DEFAULT_MIN_AGE_SECONDS = 3600

_TIMESTAMP_PREFIX = re.compile(r"^(\d+)_")


def uploaded_at(path: str) -> float | None:
    """Upload time in seconds, read from the ``{millis}_`` filename prefix."""

    match = _TIMESTAMP_PREFIX.match(path.rsplit("/", 1)[-1])
    return int(match.group(1)) / 1000 if match else None


async def find_orphaned_attachments(
    storage: AttachmentStorage,
    repository: ApplicationRepository,
    *,
    min_age_seconds: float = DEFAULT_MIN_AGE_SECONDS,
    now: float | None = None,
) -> list[str]:
    now = time.time() if now is None else now
    cutoff = now - min_age_seconds
    referenced = await repository.referenced_paths()
    stored: list[str] = []
    for slot in SLOTS:
        stored.extend(await storage.list_paths(slot.folder))

    orphans = []
    recent = 0
    for path in stored:
        if path in referenced:
            continue
        created = uploaded_at(path)
        if created is not None and created > cutoff:
            recent += 1
            continue
        orphans.append(path)

    logger.info("Attachment sweep finished", stored=len(stored), orphaned=len(orphans), too_recent=recent)
    return sorted(orphans)


async def delete_attachments(storage: AttachmentStorage, paths: list[str]) -> None:
    for path in paths:
        await storage.delete(path)
        logger.info("Deleted orphaned attachment", path=path)
