from __future__ import annotations

import contextvars
import logging
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from itertools import islice
from typing import Any, Callable, Dict, Iterable, Iterator, List, TypeVar

from config.settings import settings

log = logging.getLogger("foodshare.fanout")

T = TypeVar("T")


@dataclass
class FanoutResult:
    attempted: int = 0
    succeeded: int = 0
    failed: Dict[str, str] = field(default_factory=dict)  # item key -> error type

    def as_dict(self) -> Dict[str, Any]:
        return {"attempted": self.attempted, "succeeded": self.succeeded, "failed": len(self.failed)}


def _chunks(items: Iterable[T], size: int) -> Iterator[List[T]]:
    it = iter(items)
    while True:
        chunk = list(islice(it, size))
        if not chunk:
            return
        yield chunk


def fan_out(
    items: Iterable[T],
    fn: Callable[[T], Any],
    max_workers: int | None = None,
    chunk_size: int | None = None,
    key: Callable[[T], str] = str,
    label: str = "fanout",
) -> FanoutResult:
    """
    Call fn for every item on a bounded thread pool, one chunk at a time.

    An exception from one item is recorded against its key and never stops
    the remaining items.
    """
    max_workers = max(1, max_workers or settings.FANOUT_MAX_WORKERS)
    chunk_size = max(1, chunk_size or settings.FANOUT_CHUNK_SIZE)
    result = FanoutResult()

    with ThreadPoolExecutor(max_workers=max_workers, thread_name_prefix=label) as pool:
        for chunk in _chunks(items, chunk_size):
            # Each worker runs in a copy of the caller context so logs keep request_id/event_id.
            futures = [(item, pool.submit(contextvars.copy_context().run, fn, item)) for item in chunk]
            for item, fut in futures:
                result.attempted += 1
                try:
                    fut.result()
                    result.succeeded += 1
                except Exception as e:
                    k = key(item)
                    result.failed[k] = type(e).__name__
                    log.error(
                        "fanout_item_failed",
                        extra={"extra": {"event": "fanout_item_failed", "label": label, "item": k,
                                         "error_type": type(e).__name__, "message": str(e)}},
                        exc_info=True,
                    )
    return result
