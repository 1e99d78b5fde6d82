"""
Object transfer engine.

Moves every object of one or all buckets from a source store to a
destination store with a bounded number of concurrent moves. Stores are
either remote (:class:`StorageClient`) or local (:class:`LocalDirectoryStore`),
so the same engine serves project-to-project sync, backup downloads, and
restore uploads.

Each enumerated object becomes exactly one :class:`TransferTask`. Worker
threads only touch their own task; the calling thread consumes completions
and is the only writer of the progress bar and the aggregate stats.
"""

from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor, as_completed
from typing import Union

import requests
from tqdm import tqdm

from supabase_migrator.constants import DEFAULT_CONCURRENCY
from supabase_migrator.exceptions import BucketNotFoundError, ConfigError, MigratorError
from supabase_migrator.services.local_store import LocalDirectoryStore
from supabase_migrator.services.storage_client import StorageClient
from supabase_migrator.types import Bucket, TaskState, TransferStats, TransferTask
from supabase_migrator.utils.logging import log_with_context

ObjectStore = Union[StorageClient, LocalDirectoryStore]

# Failures that are recorded against a single object instead of aborting the run
PER_OBJECT_ERRORS = (MigratorError, requests.RequestException, OSError)


def move_object(
    source: ObjectStore, destination: ObjectStore, task: TransferTask
) -> TransferTask:
    """Fetch one object from ``source`` and store it on ``destination``.

    Never raises for transfer problems; the outcome is recorded on ``task``.
    """
    task.start()
    try:
        data = source.download(task.bucket, task.name)
        destination.upload(task.bucket, task.name, data)
    except PER_OBJECT_ERRORS as e:
        task.fail(str(e))
    else:
        task.succeed(len(data))
    return task


def transfer_bucket(
    source: ObjectStore,
    destination: ObjectStore,
    bucket: Bucket,
    concurrency: int = DEFAULT_CONCURRENCY,
    show_progress: bool = True,
) -> TransferStats:
    """Ensure ``bucket`` exists on the destination and move all of its objects.

    Args:
        source: Store to read from.
        destination: Store to write to.
        bucket: The source bucket; its public flag is copied.
        concurrency: Maximum number of objects in flight at once.
        show_progress: Whether to render a tqdm progress bar.

    Returns:
        Stats for this bucket; ``succeeded + failed`` equals the number of
        enumerated objects.
    """
    if concurrency < 1:
        raise ConfigError(f"concurrency must be at least 1, got {concurrency}")

    log_with_context(logging.INFO, f"Syncing bucket: {bucket.name}", bucket=bucket.name)
    destination.create_bucket(bucket.name, bucket.public)

    objects = source.list_all_objects(bucket.name)
    stats = TransferStats(buckets=1)
    if not objects:
        log_with_context(logging.INFO, f"Bucket {bucket.name} is empty", bucket=bucket.name)
        return stats

    tasks = [TransferTask(bucket.name, obj.name) for obj in objects]
    workers = min(concurrency, len(tasks))

    with tqdm(
        total=len(tasks),
        desc=f"Syncing {bucket.name}",
        unit="obj",
        disable=not show_progress,
    ) as pbar, ThreadPoolExecutor(max_workers=workers) as executor:
        futures = [
            executor.submit(move_object, source, destination, task) for task in tasks
        ]
        for future in as_completed(futures):
            task = future.result()
            stats.record(task)
            pbar.update(1)
            if task.state is TaskState.FAILED:
                log_with_context(
                    logging.WARNING,
                    f"Transfer error for {task.bucket}/{task.name}: {task.error}",
                    bucket=task.bucket,
                    object_name=task.name,
                )

    log_with_context(
        logging.INFO,
        f"Bucket {bucket.name}: {stats.succeeded}/{stats.attempted} objects transferred",
        bucket=bucket.name,
    )
    return stats


def transfer_storage(
    source: ObjectStore,
    destination: ObjectStore,
    bucket: str | None = None,
    concurrency: int = DEFAULT_CONCURRENCY,
    show_progress: bool = True,
) -> TransferStats:
    """Move all buckets, or the single named bucket, from source to destination.

    Listing failures propagate (nothing can proceed without the list).
    Per-object failures are counted in the returned stats and never stop
    the remaining objects.

    Raises:
        ConfigError: If ``concurrency`` is less than 1.
        BucketNotFoundError: If ``bucket`` is given but absent on the source.
        RemoteListingError: If buckets or objects cannot be enumerated.
    """
    if concurrency < 1:
        raise ConfigError(f"concurrency must be at least 1, got {concurrency}")

    buckets = source.list_buckets()
    if bucket is not None:
        buckets = [b for b in buckets if b.name == bucket]
        if not buckets:
            raise BucketNotFoundError(f"Bucket not found: {bucket}")

    log_with_context(logging.INFO, f"Found {len(buckets)} buckets to sync")

    stats = TransferStats()
    for item in buckets:
        stats.merge(
            transfer_bucket(source, destination, item, concurrency, show_progress)
        )
    return stats
