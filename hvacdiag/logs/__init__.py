"""Log store: recording, retrieval, export and retention."""

from hvacdiag.logs.store import log_recorder

__all__ = ["log_recorder"]
