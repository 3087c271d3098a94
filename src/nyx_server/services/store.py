"""Helpers for running blocking store calls from async handlers."""

from __future__ import annotations

import asyncio
from collections.abc import Callable
from typing import Any, TypeVar

from sqlalchemy.orm import Session

from nyx_server.core.errors import StoreError

T = TypeVar("T")

SessionFactory = Callable[[], Session]


async def run_in_store(fn: Callable[..., T], *args: Any, timeout: float | None = None) -> T:
    """Run ``fn(*args)`` in a worker thread, optionally bounded by ``timeout``.

    The store call is the only suspension point of an event handler. On
    timeout the caller stops waiting; the worker thread still runs to
    completion.

    Raises:
        StoreError: If ``timeout`` elapses first.
    """
    call = asyncio.to_thread(fn, *args)
    if timeout is None:
        return await call
    try:
        return await asyncio.wait_for(call, timeout)
    except TimeoutError as err:
        raise StoreError("Storage call timed out", code="store_timeout") from err
