"""Configuration constants for the NeuralSync client and bridge simulator."""

from pathlib import Path

# Client
DEFAULT_WS_URL = "ws://localhost:8000/ws"
RECONNECT_DELAY_SECONDS: float = 3.0
DEFAULT_EXPORT_DIR = Path(".")

# Bridge simulator
BRIDGE_HOST = "127.0.0.1"
BRIDGE_PORT = 8000
BRIDGE_EMIT_INTERVAL_SECONDS: float = 1.0
