"""
Duration Buckets and Value Coercion
Maps Zendesk duration metrics onto labeled reporting ranges
"""

from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Optional

NOT_APPLICABLE = "Not Applicable"


@dataclass(frozen=True)
class DurationScale:
    """
    Labeled ranges for one duration metric.

    Each bucket is (inclusive upper bound, label); values above the last
    bound get `overflow_label`. Values <= 0 are Not Applicable.
    """
    range_field: str
    buckets: tuple[tuple[int, str], ...]
    overflow_label: str

    def label(self, value: Any) -> str:
        amount = parse_int(value) or 0
        if amount <= 0:
            return NOT_APPLICABLE
        for upper, label in self.buckets:
            if amount <= upper:
                return label
        return self.overflow_label


RESOLUTION_TIME = DurationScale(
    range_field="full_resolution_time_range",
    buckets=((1440, "0 - 1 days"), (10080, "1 - 7 days"), (20160, "7 - 14 days")),
    overflow_label="> 14 days",
)

FIRST_REPLY_TIME = DurationScale(
    range_field="first_reply_time_range",
    buckets=((60, "0 - 1 hours"), (480, "1 - 8 hours"), (1440, "8 - 24 hours")),
    overflow_label="> 24 hours",
)

TIME_SPENT = DurationScale(
    range_field="total_time_spent_range",
    buckets=((3600, "0 - 1 hours"), (28800, "1 - 8 hours"), (86400, "8 - 24 hours")),
    overflow_label="> 24 hours",
)

# Export keys that are durations in their own right (minutes)
DURATION_FIELDS = {
    "full_resolution_time_in_minutes": RESOLUTION_TIME,
    "first_reply_time_in_minutes": FIRST_REPLY_TIME,
}

# Custom field labels that hold durations (seconds)
LABELED_DURATIONS = {
    "total_time_spent_(sec)": TIME_SPENT,
}


def parse_int(value: Any) -> Optional[int]:
    """Integer value of a number or numeric string, None when not numeric"""
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    try:
        return int(value)
    except (TypeError, ValueError):
        pass
    try:
        return int(float(value))
    except (TypeError, ValueError, OverflowError):
        return None


def format_timestamp(value: Any) -> Optional[str]:
    """
    Reformat a timestamp as ISO-8601 UTC (YYYY-MM-DDTHH:MM:SSZ).

    Accepts ISO strings (with Z or an offset), datetimes and epoch seconds.
    Raises ValueError for anything else.
    """
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, (int, float)) and not isinstance(value, bool):
        parsed = datetime.fromtimestamp(value, tz=timezone.utc)
    elif isinstance(value, str):
        parsed = datetime.fromisoformat(value.strip().replace("Z", "+00:00"))
    else:
        raise ValueError(f"Unsupported timestamp value: {value!r}")

    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed.astimezone(timezone.utc).strftime("%Y-%m-%dT%H:%M:%SZ")
