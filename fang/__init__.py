"""Background task queue with SQLite storage, threaded workers, retries and cron scheduling."""

__version__ = "0.1.0"

__all__ = [
    "core",
    "cron",
    "errors",
    "queue",
    "runnable",
    "schema",
    "worker",
    "worker_pool",
]