"""Real-time room relay: rate-limited WebSocket chat rooms."""

__version__ = "0.1.0"
