"""
Worker loop that processes queued seed link imports.

Each job scrapes one vendor URL, stores the scraped seed on the job, saves
the hero image to object storage and writes exactly one import log row.
"""

from __future__ import annotations

import logging
import time
from dataclasses import asdict
from typing import List, Optional, Tuple

from backend.config import get_settings
from backend.db import DbClient, ImportJobRecord, ImportLogRecord
from backend.dependencies import get_db_client, get_queue_client, get_storage_client
from backend.queue import JobQueue
from backend.storage import StorageClient
from import_pipeline import fetch_utils, image_utils, import_pipeline
from shared.types import ImportStatus

logger = logging.getLogger(__name__)


MAX_HERO_CANDIDATES = 3


def _store_hero_image(
    job: ImportJobRecord, candidates: List[str], storage: StorageClient
) -> Tuple[Optional[str], Optional[str]]:
    """
    Downloads the candidate images and stores the first one that decodes.

    Returns (storage path, source url), or (None, None) when none worked.
    """
    settings = get_settings()
    candidates = candidates[:MAX_HERO_CANDIDATES]
    downloads = fetch_utils.fetch_images(candidates, timeout=settings.image_timeout_seconds)
    for url in candidates:
        data = downloads.get(url)
        if not data:
            continue
        try:
            return image_utils.store_hero_image(data, job.user_id, job.job_id, storage), url
        except ValueError as e:
            logger.warning("[%s] Hero image rejected from %s: %s", job.job_id, url, e)
    return None, None


def _write_log(db: DbClient, record: ImportLogRecord) -> None:
    try:
        db.insert_import_log(record)
    except Exception:
        logger.exception("[%s] Failed to write import log for %s", record.id, record.url)


def process_job(
    job: ImportJobRecord, db: DbClient, storage: Optional[StorageClient] = None
) -> ImportStatus:
    """
    Process a single claimed job and return its final status.

    Unexpected failures mark the job ERROR and still leave an import log row.
    """
    storage = storage or get_storage_client()
    db.update_job_progress(
        job.job_id, status=ImportStatus.SCRAPING, stage="FETCH_PAGE", progress_percent=0.1
    )
    try:
        logger.info("[%s] Importing %s", job.job_id, job.url)
        result = import_pipeline.import_seed_from_url(
            job.url, timeout=get_settings().scrape_timeout_seconds
        )
        seed = result.seed

        hero_path = None
        candidates = seed.image_candidates or (
            [seed.hero_image_url] if seed.hero_image_url else []
        )
        if candidates:
            db.update_job_progress(job.job_id, stage="HERO_IMAGE", progress_percent=0.6)
            hero_path, stored_url = _store_hero_image(job, candidates, storage)
            if stored_url:
                seed.hero_image_url = stored_url
            result.trace.append(f"hero stored: {'yes' if hero_path else 'no'}")

        payload = asdict(seed)
        payload["hero_image_path"] = hero_path
        final_status = ImportStatus.SUCCESS if seed.name else ImportStatus.ERROR

        hero_url = seed.hero_image_url or ""
        _write_log(
            db,
            ImportLogRecord(
                user_id=job.user_id,
                url=job.url,
                vendor_name=seed.vendor or None,
                status_code=result.status_code,
                identity_key_generated=seed.identity_key or None,
                error_message=result.trace_text,
                hero_image_url=hero_url if hero_url.startswith("http") else None,
            ),
        )
        db.update_job_progress(
            job.job_id,
            status=final_status,
            stage=final_status.value,
            progress_percent=1.0,
            result=payload,
        )
        logger.info("[%s] Import finished: %s", job.job_id, final_status.value)
        return final_status
    except Exception as exc:
        logger.exception("[%s] Import failed: %s", job.job_id, exc)
        _write_log(
            db,
            ImportLogRecord(
                user_id=job.user_id,
                url=job.url,
                status_code=0,
                error_message=f"worker error: {type(exc).__name__}: {exc}",
            ),
        )
        db.update_job_progress(
            job.job_id, status=ImportStatus.ERROR, stage="ERROR", progress_percent=0.0
        )
        return ImportStatus.ERROR


def process_next(
    *,
    db: Optional[DbClient] = None,
    queue: Optional[JobQueue] = None,
    storage: Optional[StorageClient] = None,
    block: bool = True,
    timeout: Optional[int] = None,
) -> bool:
    """
    Fetch and process one job from the queue (or DB fallback). Returns True if processed.
    """
    db = db or get_db_client()
    queue = queue or get_queue_client()

    job_id = queue.dequeue(block=block, timeout=timeout)
    if job_id:
        job = db.claim_job(job_id)
        if not job:
            logger.warning("Job %s from queue is missing or already claimed", job_id)
            return False
    else:
        # Jobs that were created but never queued.
        job = db.claim_next_waiting_job()
        if not job:
            return False

    process_job(job, db, storage)
    return True


def run_loop(poll_interval_seconds: float = 2.0) -> None:
    """
    Simple polling loop that blocks on the queue. Intended to be run under systemd/supervisor.
    """
    settings = get_settings()
    db = get_db_client()
    queue = get_queue_client()
    storage = get_storage_client()
    while True:
        requeued = db.requeue_stale_locks(lock_timeout_seconds=settings.stale_lock_seconds)
        if requeued:
            logger.info("Requeued %d stale import jobs", requeued)
        processed = process_next(
            db=db,
            queue=queue,
            storage=storage,
            block=True,
            timeout=int(poll_interval_seconds),
        )
        if not processed:
            time.sleep(poll_interval_seconds)


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO)
    run_loop()
