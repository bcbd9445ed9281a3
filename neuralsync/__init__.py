"""
NeuralSync - a client for a local EEG emotion bridge.

This package keeps a live WebSocket connection to the bridge, records the
predictions it streams during a collection session, and derives the chart
series and CSV export from that session.
"""

__version__ = "0.1.0"
