"""
Time-gated action checks.

An action is permitted once a recorded timestamp plus a fixed delay has
passed (``check_delay``), or once an absolute ready time has passed
(``check_ready_at``). "Now" is always passed in by the caller so the checks
stay pure.
"""
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Optional, Union

NO_REQUEST_MESSAGE = "No request has been recorded for this action."


@dataclass(frozen=True)
class GateDecision:
    permitted: bool
    remaining: timedelta
    message: str

    @property
    def remaining_display(self) -> str:
        return format_remaining(self.remaining)


def ensure_aware(value: datetime) -> datetime:
    """Treat naive datetimes as UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def parse_timestamp(value: Union[datetime, str, None]) -> Optional[datetime]:
    """Accept a datetime or an ISO-8601 string (as stored in JSON metadata)."""
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return ensure_aware(value)
    try:
        return ensure_aware(datetime.fromisoformat(str(value).replace("Z", "+00:00")))
    except ValueError:
        return None


def format_remaining(delta: timedelta) -> str:
    """Render a duration as ``"{h}h {m}m {s}s"``, floored to whole seconds."""
    total = max(0, int(delta.total_seconds()))
    hours, rest = divmod(total, 3600)
    minutes, seconds = divmod(rest, 60)
    return f"{hours}h {minutes}m {seconds}s"


def check_ready_at(
    ready_at: Union[datetime, str, None],
    now: datetime,
    missing_message: str = NO_REQUEST_MESSAGE,
) -> GateDecision:
    """Permit when ``now`` has reached ``ready_at``."""
    ready = parse_timestamp(ready_at)
    if ready is None:
        return GateDecision(False, timedelta(0), missing_message)

    now = ensure_aware(now)
    if now >= ready:
        return GateDecision(True, timedelta(0), "The waiting period is over.")

    remaining = ready - now
    return GateDecision(
        False,
        remaining,
        f"Please wait {format_remaining(remaining)} before trying again."
    )


def check_delay(
    recorded_at: Union[datetime, str, None],
    delay: timedelta,
    now: datetime,
    missing_message: str = NO_REQUEST_MESSAGE,
) -> GateDecision:
    """Permit when at least ``delay`` has elapsed since ``recorded_at``."""
    recorded = parse_timestamp(recorded_at)
    if recorded is None:
        return GateDecision(False, timedelta(0), missing_message)
    return check_ready_at(recorded + delay, now, missing_message)
