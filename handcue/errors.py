"""Exceptions raised by the HandCue pipeline."""

from __future__ import annotations


class HandCueError(RuntimeError):
    """Base class for pipeline errors."""


class InitializationError(HandCueError):
    """The landmark provider could not be configured.

    Fatal to the session until ``initialize()`` succeeds.
    """


class NotInitializedError(HandCueError):
    """Detection was started before the session reached READY."""


class SessionDisposedError(HandCueError):
    """The session was used after ``close()``."""


class FrameProcessingError(HandCueError):
    """A single frame failed; later frames are unaffected."""


class FrameDroppedError(FrameProcessingError):
    """The provider answered a later frame without answering this one."""

    def __init__(self, ticket: int, superseded_by: int) -> None:
        super().__init__(f"Frame {ticket} dropped by provider (answered {superseded_by} instead)")
        self.ticket = ticket
        self.superseded_by = superseded_by
