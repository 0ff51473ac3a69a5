import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, List


MAX_CONSECUTIVE_ERRORS = 5
RECORD_KINDS = ("info", "success", "error", "warning")

_LEVELS = {
    "info": logging.INFO,
    "success": logging.INFO,
    "warning": logging.WARNING,
    "error": logging.ERROR,
}

logger = logging.getLogger("botcop.autonomy")


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class ActivityRecord:
    timestamp: datetime
    message: str
    kind: str = "info"


@dataclass(frozen=True)
class ActivityStats:
    total: int
    successes: int
    errors: int
    success_rate: str

    def as_dict(self) -> Dict[str, Any]:
        return {
            "total": self.total,
            "successes": self.successes,
            "errors": self.errors,
            "successRate": self.success_rate,
        }


@dataclass
class ActivityTracker:
    """Append-only activity log plus the consecutive-error health counter."""

    max_consecutive_errors: int = MAX_CONSECUTIVE_ERRORS
    consecutive_errors: int = 0
    log: List[ActivityRecord] = field(default_factory=list)

    def record(self, message: str, kind: str = "info") -> ActivityRecord:
        if kind not in RECORD_KINDS:
            kind = "info"
        entry = ActivityRecord(timestamp=utc_now(), message=message, kind=kind)
        self.log.append(entry)
        logger.log(_LEVELS[kind], message)
        return entry

    def record_success(self) -> None:
        self.consecutive_errors = 0

    def record_failure(self) -> None:
        self.consecutive_errors += 1

    def is_healthy(self) -> bool:
        return self.consecutive_errors < self.max_consecutive_errors

    def stats(self) -> ActivityStats:
        total = len(self.log)
        successes = sum(1 for entry in self.log if entry.kind == "success")
        errors = sum(1 for entry in self.log if entry.kind == "error")
        rate = f"{successes / total * 100:.2f}%" if total > 0 else "0%"
        return ActivityStats(total=total, successes=successes, errors=errors, success_rate=rate)
