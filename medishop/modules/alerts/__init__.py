from .monitor import AlertMonitor

__all__ = ["AlertMonitor"]
