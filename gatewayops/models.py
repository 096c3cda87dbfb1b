"""Models shared by the supervisor, the command proxy and the HTTP layer."""

from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Optional


class ProcessStatus(str, Enum):
    """Process status values reported by the sandbox.

    The sandbox may report other terminal states; ``Process.status`` keeps
    the raw string so unknown values pass through untouched.
    """
    STARTING = "starting"
    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"
    KILLED = "killed"
    ERROR = "error"
    MISSING = "missing"  # Dropped by the sandbox while we were waiting on it


ACTIVE_STATUSES = frozenset({ProcessStatus.STARTING.value, ProcessStatus.RUNNING.value})


class GatewayState(str, Enum):
    """Last known state of the supervised gateway."""
    ABSENT = "absent"
    RUNNING = "running"
    RESTARTING = "restarting"
    UNKNOWN = "unknown"  # Last sandbox call failed


class ConfigCommand(str, Enum):
    """Config operations the command proxy can run."""
    GET = "get"
    SET = "set"


def _parse_start_time(value: Any) -> Optional[datetime]:
    if value is None or value == "":
        return None
    if isinstance(value, (int, float)):
        return datetime.fromtimestamp(value, tz=timezone.utc)
    # fromisoformat() before 3.11 does not accept a trailing "Z"
    text = str(value)
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    return datetime.fromisoformat(text)


@dataclass
class Process:
    """Snapshot of a process tracked by the sandbox."""

    id: str
    command: str
    status: str
    start_time: Optional[datetime] = None
    exit_code: Optional[int] = None

    @property
    def is_active(self) -> bool:
        return self.status in ACTIVE_STATUSES

    @classmethod
    def from_dict(cls, data: dict) -> "Process":
        exit_code = data.get("exitCode", data.get("exit_code"))
        return cls(
            id=str(data["id"]),
            command=data.get("command", ""),
            status=data.get("status", ""),
            start_time=_parse_start_time(data.get("startTime", data.get("start_time"))),
            exit_code=int(exit_code) if exit_code is not None else None,
        )

    def to_dict(self) -> dict:
        """Sanitized representation used by the HTTP layer."""
        return {
            "id": self.id,
            "command": self.command,
            "status": self.status,
            "startTime": self.start_time.isoformat() if self.start_time else None,
            "exitCode": self.exit_code,
        }


@dataclass
class ProcessLogs:
    """Captured output of a sandbox process."""
    stdout: str = ""
    stderr: str = ""


@dataclass
class CommandResult:
    """Outcome of one command proxy invocation."""
    success: bool
    exit_code: Optional[int]
    stdout: str
    stderr: str
    status: str
    timed_out: bool = False


@dataclass
class RestartAck:
    """Acknowledgment that a restart was initiated (not that it finished)."""
    success: bool
    message: str
    previous_process_id: Optional[str] = None
