"""Exception types and the per-run error collector.

Fatal problems raise. Recoverable ones (one map, one property) get recorded
in an ErrorCollector and the run keeps going - the count is reported at the
end so a finished audit can say "completed with N warnings".
"""

import logging
import threading
from dataclasses import dataclass
from datetime import datetime
from typing import List, Dict, Any, Tuple

from .time import now_utc

logger = logging.getLogger(__name__)


class AuditError(Exception):
    """Base class for everything the auditor raises on purpose."""


class ConfigError(AuditError):
    """Missing or invalid configuration (credentials, worker count, ...)."""


class SearchError(AuditError):
    """Property search or rule tree read failed (transport, auth, non-2xx)."""


class ResolveError(AuditError):
    """Hostname lookup for a single property version failed."""


class AuditAbortedError(AuditError):
    """A required phase failed and no meaningful result can be produced."""


class UsageError(AuditError):
    """Conflicting options. Raised before any network activity."""


@dataclass(frozen=True)
class ErrorEntry:
    timestamp: datetime
    context: str  # e.g. "map:s123.akamaiedge.net", "hostnames:prp_1@3"
    message: str

    def to_dict(self) -> Dict[str, Any]:
        return {
            'timestamp': self.timestamp.isoformat(),
            'context': self.context,
            'message': self.message,
        }


class ErrorCollector:
    """Accepts (context, error) pairs from any thread.

    Read side is a snapshot - callers can't mutate what was recorded.
    """

    def __init__(self):
        self._entries: List[ErrorEntry] = []
        self._lock = threading.Lock()

    def record(self, context: str, error: BaseException) -> ErrorEntry:
        entry = ErrorEntry(timestamp=now_utc(), context=context, message=str(error) or type(error).__name__)
        with self._lock:
            self._entries.append(entry)
        logger.warning(f"[{context}] {entry.message}")
        return entry

    @property
    def entries(self) -> Tuple[ErrorEntry, ...]:
        with self._lock:
            return tuple(self._entries)

    @property
    def count(self) -> int:
        with self._lock:
            return len(self._entries)

    def __len__(self) -> int:
        return self.count

    def to_rows(self) -> List[Dict[str, Any]]:
        """Rows for errors.csv."""
        return [e.to_dict() for e in self.entries]
