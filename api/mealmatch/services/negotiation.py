from __future__ import annotations

import random
from dataclasses import dataclass
from datetime import date, datetime, time
from typing import Iterable
from zoneinfo import ZoneInfo

from ..config import DEFAULT_MEAL_LOCATIONS, MATCH_TIMEZONE
from .availability import AvailabilityProfile

_default_rng = random.Random()


@dataclass(frozen=True)
class ProposedSlot:
    day: str
    slot: str

    def starts_at(self, tz: str = MATCH_TIMEZONE) -> datetime:
        hours, minutes = (int(x) for x in self.slot.split(":"))
        return datetime.combine(date.fromisoformat(self.day), time(hours, minutes), tzinfo=ZoneInfo(tz))


def negotiate(
    profile_a: AvailabilityProfile,
    profile_b: AvailabilityProfile,
    *,
    rng: random.Random | None = None,
) -> tuple[ProposedSlot | None, bool]:
    """Pick a slot both profiles list for the same day.

    Days of ``profile_a`` are visited in shuffled order so repeated calls do not
    favour the first day of the week. Returns ``(None, False)`` when no day overlaps.
    """
    rng = rng or _default_rng
    days = sorted(profile_a.slots_by_day.keys())
    rng.shuffle(days)
    for day in days:
        common = profile_a.slots_for(day) & profile_b.slots_for(day)
        if not common:
            continue
        return ProposedSlot(day=day, slot=rng.choice(sorted(common))), True
    return None, False


def choose_location(
    overlap: Iterable[str],
    fallback: Iterable[str],
    *,
    rng: random.Random | None = None,
    defaults: Iterable[str] | None = None,
) -> str:
    rng = rng or _default_rng
    for pool in (overlap, fallback, defaults or DEFAULT_MEAL_LOCATIONS):
        options = sorted({str(x).strip() for x in (pool or []) if str(x or "").strip()})
        if options:
            return rng.choice(options)
    return rng.choice(DEFAULT_MEAL_LOCATIONS)
