"""Client for the Bybit spot v1 REST endpoints and websocket streams, with mock servers and golden-file helpers for tests."""

__version__ = "0.1.0"