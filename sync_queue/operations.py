"""
Queue operations for re-sync job submission.

Stateless operations that work on the queue instance passed in, plus the
PersistentResyncQueue adapter the engine submits corrective work through.
"""

import asyncio
import itertools
import os
import pickle
import sqlite3
import threading
import time
from typing import Any, Optional

import persistqueue

from shared.log import create_logger

log_debug, _, _, _ = create_logger("Queue")

# Simple counter for job IDs (resets on restart, used for log correlation only)
_job_counter = itertools.count(1)

# persist-queue AckStatus codes still owned by the worker:
# 0 = inited, 1 = ready (pending), 2 = unack (in progress)
_OPEN_STATUSES = (0, 1, 2)


def make_job_key(store_id: str, entity_type: str, entity_id: str) -> str:
    """Identity of a re-sync job, used for deduplication."""
    return f"{store_id}:{entity_type}:{entity_id}"


def enqueue(
    queue: 'persistqueue.SQLiteAckQueue',
    store_id: str,
    entity_type: str,
    entity_id: str,
    metadata: dict[str, Any],
    action: str = "UPDATE"
) -> dict:
    """
    Enqueue a re-sync job.

    Args:
        queue: SQLiteAckQueue instance
        store_id: Store the entity belongs to
        entity_type: Entity family (space, person, conference, list)
        entity_id: Local entity ID
        metadata: Job metadata (e.g. the drift provenance marker)
        action: Sync action for the worker (default: UPDATE)

    Returns:
        The enqueued job dict

    Example:
        >>> from persistqueue import SQLiteAckQueue
        >>> queue = SQLiteAckQueue('/tmp/queue')
        >>> job = enqueue(queue, 'store-1', 'person', 'p-42',
        ...               {'verification_resync': True})
        >>> print(job['job_key'])
        store-1:person:p-42
    """
    job = {
        'pqid': next(_job_counter),
        'store_id': store_id,
        'entity_type': entity_type,
        'entity_id': entity_id,
        'action': action,
        'payload': {'changes': dict(metadata)},
        'enqueued_at': time.time(),
        'job_key': make_job_key(store_id, entity_type, entity_id),
    }

    queue.put(job)
    log_debug(f"Enqueued {action} job for {entity_type} {entity_id}", store_id=store_id)

    return job


def _find_queue_table(conn: sqlite3.Connection) -> Optional[str]:
    # persist-queue names its table ack_queue_<name> (ack_queue_default by default)
    cursor = conn.execute(
        "SELECT name FROM sqlite_master WHERE type='table' AND name LIKE 'ack_queue%'"
    )
    table = cursor.fetchone()
    return table[0] if table else None


def get_queued_job_keys(queue_path: str) -> set[str]:
    """
    Get job keys for all items currently in queue (pending or in-progress).

    Queries SQLite directly and deserializes job data to extract job keys.
    Used for dedup-on-receipt so repeated drift runs (or a manual check
    overlapping a scheduled one) do not stack duplicate jobs.

    Args:
        queue_path: Path to queue directory (contains data.db)

    Returns:
        Set of job key strings currently in queue
    """
    db_path = os.path.join(queue_path, 'data.db')
    if not os.path.exists(db_path):
        return set()

    conn = sqlite3.connect(db_path)
    try:
        table_name = _find_queue_table(conn)
        if not table_name:
            return set()

        placeholders = ', '.join('?' for _ in _OPEN_STATUSES)
        cursor = conn.execute(
            f"SELECT data FROM {table_name} WHERE status IN ({placeholders})",
            _OPEN_STATUSES,
        )

        keys = set()
        for row in cursor:
            try:
                job = pickle.loads(row[0])
            except (pickle.UnpicklingError, EOFError, TypeError, ValueError):
                continue
            key = job.get('job_key') if isinstance(job, dict) else None
            if key:
                keys.add(key)
        return keys
    finally:
        conn.close()


class PersistentResyncQueue:
    """Durable re-sync queue backed by persist-queue's SQLiteAckQueue.

    Implements the engine's ResyncQueue port. Submissions for an entity that
    already has a pending or in-progress job are dropped on receipt.

    Args:
        queue_path: Queue directory (created if missing)
        queue: Optional pre-built SQLiteAckQueue (tests, shared worker queue)
    """

    def __init__(self, queue_path: str, queue: Optional['persistqueue.SQLiteAckQueue'] = None):
        self.queue_path = queue_path
        if queue is None:
            os.makedirs(queue_path, exist_ok=True)
            # multithreading: submissions run in worker threads via asyncio.to_thread
            queue = persistqueue.SQLiteAckQueue(queue_path, auto_commit=True, multithreading=True)
        self.queue = queue
        # Check-then-put must not interleave between concurrent runs.
        self._submit_lock = threading.Lock()

    async def enqueue(
        self,
        store_id: str,
        entity_type: str,
        entity_id: str,
        metadata: dict[str, Any]
    ) -> None:
        await asyncio.to_thread(self.submit, store_id, entity_type, entity_id, metadata)

    def submit(
        self,
        store_id: str,
        entity_type: str,
        entity_id: str,
        metadata: dict[str, Any]
    ) -> Optional[dict]:
        """Blocking submission with deduplication.

        Returns:
            The enqueued job dict, or None if an open job already exists
        """
        key = make_job_key(store_id, entity_type, entity_id)
        with self._submit_lock:
            if key in get_queued_job_keys(self.queue_path):
                log_debug(f"Job {key} already queued, skipping", store_id=store_id)
                return None
            return enqueue(self.queue, store_id, entity_type, entity_id, metadata)
