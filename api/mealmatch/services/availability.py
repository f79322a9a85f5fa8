from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from datetime import date, datetime, timedelta, timezone
from typing import Any
from zoneinfo import ZoneInfo

from ..config import MATCH_TIMEZONE, SLOT_MINUTES
from ..models import UserAvailability

logger = logging.getLogger(__name__)

RECURRING_WEEK_KEY = "recurring"
_TIME_LABEL_RE = re.compile(r"^([01]\d|2[0-3]):([0-5]\d)$")


@dataclass
class AvailabilityProfile:
    user_id: str
    week_start_date: str
    is_recurring: bool
    slots_by_day: dict[str, set[str]] = field(default_factory=dict)

    def slots_for(self, day: str) -> set[str]:
        return self.slots_by_day.get(day) or set()

    def as_dict(self) -> dict[str, Any]:
        return {
            "user_id": self.user_id,
            "week_start_date": self.week_start_date,
            "is_recurring": self.is_recurring,
            "slots_by_day": {day: sorted(slots) for day, slots in sorted(self.slots_by_day.items())},
        }


def local_today(now: datetime | None = None, tz: str = MATCH_TIMEZONE) -> date:
    now = now or datetime.now(timezone.utc)
    return now.astimezone(ZoneInfo(tz)).date()


def get_week_start_date(value: date | datetime, tz: str = MATCH_TIMEZONE) -> date:
    if isinstance(value, datetime):
        value = value.astimezone(ZoneInfo(tz)).date() if value.tzinfo else value.date()
    return value - timedelta(days=value.weekday())


def week_key(value: date | datetime) -> str:
    return get_week_start_date(value).isoformat()


def is_valid_time_label(label: Any) -> bool:
    if not isinstance(label, str):
        return False
    m = _TIME_LABEL_RE.match(label)
    if not m:
        return False
    return int(m.group(2)) % SLOT_MINUTES == 0


def normalize_slots(slots: dict[str, Any] | None) -> dict[str, list[str]]:
    """Validate a day -> labels mapping and return it with sorted, de-duplicated labels.

    Days with no labels are dropped. Raises ValueError on a malformed day key or label.
    """
    out: dict[str, list[str]] = {}
    for day, labels in (slots or {}).items():
        try:
            date.fromisoformat(str(day))
        except ValueError:
            raise ValueError(f"invalid day key: {day!r}") from None
        if not isinstance(labels, (list, tuple, set, frozenset)):
            raise ValueError(f"slots for {day} must be a list of HH:MM labels")
        clean: set[str] = set()
        for label in labels:
            if not is_valid_time_label(label):
                raise ValueError(f"invalid time label for {day}: {label!r}")
            clean.add(label)
        if clean:
            out[str(day)] = sorted(clean)
    return out


def _to_profile(row: UserAvailability, week_start_date: str) -> AvailabilityProfile:
    raw = row.slots_by_day if isinstance(row.slots_by_day, dict) else {}
    return AvailabilityProfile(
        user_id=row.user_id,
        week_start_date=week_start_date,
        is_recurring=bool(row.is_recurring),
        slots_by_day={day: set(labels or []) for day, labels in raw.items()},
    )


def get_availability(db, user_id: str, reference_date: date | datetime) -> AvailabilityProfile | None:
    key = week_key(reference_date)
    row = db.get(UserAvailability, (user_id, key))
    if row is not None:
        return _to_profile(row, key)

    recurring = db.get(UserAvailability, (user_id, RECURRING_WEEK_KEY))
    if recurring is None:
        return None
    # Template is served for the requested week; the stored row keeps its own key.
    return _to_profile(recurring, key)


def put_availability(
    db,
    user_id: str,
    reference_date: date | datetime,
    slots: dict[str, Any],
    recurring: bool = False,
) -> AvailabilityProfile:
    clean = normalize_slots(slots)
    key = RECURRING_WEEK_KEY if recurring else week_key(reference_date)

    row = db.get(UserAvailability, (user_id, key))
    if row is None:
        row = UserAvailability(user_id=user_id, week_key=key)
        db.add(row)
    row.is_recurring = bool(recurring)
    row.slots_by_day = clean
    row.updated_at = datetime.now(timezone.utc)
    db.commit()

    logger.info("[AVAIL] saved user_id=%s week_key=%s days=%d", user_id, key, len(clean))
    return AvailabilityProfile(
        user_id=user_id,
        week_start_date=key,
        is_recurring=bool(recurring),
        slots_by_day={day: set(labels) for day, labels in clean.items()},
    )
