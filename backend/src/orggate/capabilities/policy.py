"""Pure policy helpers: allowed-hours windows, approval policy, quotas.

allowed_hours shape (stored on SecurityPolicy):
    {"start": "08:00", "end": "18:00", "timezone": "Europe/Berlin",
     "days_of_week": [1, 2, 3, 4, 5]}

Days are counted from Sunday = 0. The window is [start, end) at minute
resolution in the policy timezone; start > end wraps past midnight and the
day-of-week test uses the local day of the evaluated instant. start == end
covers the whole day.
"""

from datetime import datetime, timezone
from typing import Any, Dict, Optional
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from ..observability.logging_config import get_logger

logger = get_logger(__name__)


class ApprovalPolicy:
    INHERIT = "inherit"
    ALWAYS = "always"
    NEVER = "never"


def parse_hhmm(value: str) -> int:
    """Convert "HH:MM" into minutes since midnight.

    Raises:
        ValueError: If the value is not a valid 24h clock time
    """
    hours, _, minutes = str(value).partition(":")
    h, m = int(hours), int(minutes or 0)
    if not (0 <= h <= 23 and 0 <= m <= 59):
        raise ValueError(f"Invalid time of day: {value}")
    return h * 60 + m


def sunday_based_weekday(moment: datetime) -> int:
    """Day of week with Sunday = 0 (datetime.weekday() has Monday = 0)."""
    return (moment.weekday() + 1) % 7


def is_within_allowed_hours(allowed_hours: Optional[Dict[str, Any]], now: Optional[datetime] = None) -> bool:
    """True if `now` falls inside the policy's allowed window.

    A missing window allows every instant. A malformed window (bad clock
    times or unknown timezone) denies.
    """
    if not allowed_hours:
        return True

    now = now or datetime.now(timezone.utc)
    try:
        start = parse_hhmm(allowed_hours["start"])
        end = parse_hhmm(allowed_hours["end"])
        tz = ZoneInfo(allowed_hours.get("timezone") or "UTC")
    except (KeyError, ValueError, ZoneInfoNotFoundError) as e:
        logger.warning(f"Invalid allowed_hours policy, denying: {e}")
        return False

    local = now.astimezone(tz)
    days = allowed_hours.get("days_of_week")
    if days is not None and sunday_based_weekday(local) not in days:
        return False

    minute = local.hour * 60 + local.minute
    if start == end:
        return True
    if start < end:
        return start <= minute < end
    return minute >= start or minute < end


def resolve_requires_approval(approval_policy: Optional[str], capability_default: bool) -> bool:
    """Apply an org's approval policy on top of the capability default."""
    if approval_policy == ApprovalPolicy.ALWAYS:
        return True
    if approval_policy == ApprovalPolicy.NEVER:
        return False
    return bool(capability_default)


def remaining(limit: Optional[int], usage: Optional[int]) -> Optional[int]:
    """Remaining quota, or None when unlimited."""
    if limit is None:
        return None
    return max(limit - (usage or 0), 0)


def quota_exhausted(limit: Optional[int], usage: Optional[int]) -> bool:
    return limit is not None and (usage or 0) >= limit
