"""Readiness gate: holds query handling back until a dataset is installed."""

from __future__ import annotations

import asyncio
import logging
from typing import Generic, Optional, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")


class ReadinessGate(Generic[T]):
    """
    One-shot notification guarding the worker's dataset.

    ``wait()`` suspends the caller until ``open()`` has been called at least once and
    then returns the current value. There is no timeout: if ``open()`` never
    happens, waiters stay suspended. Opening again replaces the value; the gate
    never closes.

    The underlying ``asyncio.Event`` is created lazily so the gate can be
    constructed outside a running event loop.
    """

    def __init__(self) -> None:
        self._value: Optional[T] = None
        self._event: Optional[asyncio.Event] = None

    @property
    def _ready(self) -> asyncio.Event:
        if self._event is None:
            self._event = asyncio.Event()
        return self._event

    @property
    def is_open(self) -> bool:
        return self._value is not None

    @property
    def value(self) -> Optional[T]:
        return self._value

    def open(self, value: T) -> None:
        replacing = self._value is not None
        self._value = value
        self._ready.set()
        logger.debug("Readiness gate %s", "value replaced" if replacing else "opened")

    async def wait(self) -> T:
        value = self._value
        while value is None:
            logger.debug("Waiting for dataset to become ready")
            await self._ready.wait()
            value = self._value
        return value
