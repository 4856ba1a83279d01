"""Inference module — result sequencing and detection sessions."""

from handcue.inference.sequencer import ResultSequencer
from handcue.inference.session import DetectionSession, SessionConfig, SessionStats

__all__ = ["DetectionSession", "ResultSequencer", "SessionConfig", "SessionStats"]
