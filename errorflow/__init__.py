"""ErrorFlow: error classification pipeline with realtime progress streaming."""

__version__ = "0.3.0"
