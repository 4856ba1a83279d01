"""Ordered correlation of frames with asynchronous landmark results.

The provider answers through one shared callback. Every submission gets
a strictly increasing ticket that travels with the frame and comes back
with its result, and results are released in submission order: when the
provider answers ticket T, any older ticket still pending was skipped by
the provider and is failed with ``FrameDroppedError`` before T resolves.
"""

from __future__ import annotations

import asyncio
import time
from collections import OrderedDict
from typing import TYPE_CHECKING

from loguru import logger

from handcue.errors import FrameDroppedError, FrameProcessingError

if TYPE_CHECKING:
    import numpy as np

    from handcue.types import Hand, LandmarkProvider


class ResultSequencer:
    """Match submitted frames to provider results, oldest first.

    Registers itself as the provider's only result callback. Must be used
    from a single event loop; ``submit`` is the only suspension point.

    Usage:
        >>> sequencer = ResultSequencer(provider)
        >>> hands = await sequencer.submit(frame)
    """

    def __init__(self, provider: LandmarkProvider, timeout_ms: float | None = None) -> None:
        self._provider = provider
        self._timeout_s = None if timeout_ms is None else timeout_ms / 1000.0
        self._pending: OrderedDict[int, asyncio.Future[list[Hand]]] = OrderedDict()
        self._last_ticket = 0
        provider.on_result(self._resolve)

    @property
    def pending_count(self) -> int:
        return len(self._pending)

    def _next_ticket(self) -> int:
        # Tickets double as live-stream timestamps and must strictly increase.
        ticket = max(self._last_ticket + 1, int(time.monotonic() * 1000))
        self._last_ticket = ticket
        return ticket

    async def submit(self, frame: np.ndarray) -> list[Hand]:
        """Hand a frame to the provider and wait for its hands.

        Raises:
            FrameProcessingError: If the provider rejects the frame, the
                result times out, or the provider skipped this frame.
        """
        loop = asyncio.get_running_loop()
        ticket = self._next_ticket()
        future: asyncio.Future[list[Hand]] = loop.create_future()
        self._pending[ticket] = future

        try:
            self._provider.submit_frame(frame, ticket)
        except Exception as e:
            self._pending.pop(ticket, None)
            raise FrameProcessingError(f"Provider rejected frame {ticket}: {e}") from e

        if self._timeout_s is None:
            return await future

        try:
            return await asyncio.wait_for(future, self._timeout_s)
        except asyncio.TimeoutError:
            self._pending.pop(ticket, None)
            raise FrameProcessingError(
                f"No result for frame {ticket} within {self._timeout_s * 1000:.0f} ms"
            ) from None

    def _resolve(self, ticket: int, hands: list[Hand]) -> None:
        """Provider result callback."""
        if ticket not in self._pending:
            logger.debug("Ignoring result for unknown or settled ticket {}", ticket)
            return

        while self._pending:
            head, future = self._pending.popitem(last=False)
            if head == ticket:
                if not future.done():
                    future.set_result(hands)
                return
            if not future.done():
                logger.warning("Provider skipped frame {} (answered {})", head, ticket)
                future.set_exception(FrameDroppedError(head, ticket))

    def clear(self) -> None:
        """Abandon every pending submission; waiters get ``FrameProcessingError``."""
        for ticket, future in self._pending.items():
            if not future.done():
                future.set_exception(FrameProcessingError(f"Frame {ticket} abandoned"))
        self._pending.clear()
