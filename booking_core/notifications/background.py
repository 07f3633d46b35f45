# booking_core/notifications/background.py
"""
Worker pool for notification fan-out.

The booking response goes out as soon as the transaction commits; emails and
WhatsApp messages are delivered from here afterwards.
"""
from __future__ import annotations

import logging
from concurrent.futures import Future, ThreadPoolExecutor
from typing import Any, Callable, Optional

from django.conf import settings
from django.db import connection

logger = logging.getLogger(__name__)

_executor = ThreadPoolExecutor(
    max_workers=int(getattr(settings, "NOTIFICATION_WORKERS", 4)),
    thread_name_prefix="notifications",
)


def _run(fn: Callable[..., Any], kwargs: dict) -> Any:
    try:
        return fn(**kwargs)
    finally:
        # each worker thread holds its own connection
        connection.close()


def submit(fn: Callable[..., Any], **kwargs) -> Optional[Future]:
    """
    Queue ``fn(**kwargs)`` on the pool and return its Future.
    With NOTIFICATIONS_ASYNC off the call runs inline and None is returned.
    """
    if not getattr(settings, "NOTIFICATIONS_ASYNC", True):
        fn(**kwargs)
        return None

    logger.debug("queueing %s", getattr(fn, "__name__", fn))
    return _executor.submit(_run, fn, kwargs)
