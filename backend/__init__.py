"""HandCue — FastAPI backend (optional server mode).

Streams gesture events to remote clients over WebSocket. It is OPTIONAL:
the core pipeline in `handcue/` runs entirely on-device without it.
"""
