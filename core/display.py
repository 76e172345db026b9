"""
Formatting helpers shared by the HTML dashboard and the console watcher.
"""
from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Iterable, List, Optional
from zoneinfo import ZoneInfo

from core.models import PickupSlot
from core.upstream.client import UPSTREAM_BASE

BERLIN_TZ = ZoneInfo("Europe/Berlin")
WEEKDAYS_DE = ["Mo.", "Di.", "Mi.", "Do.", "Fr.", "Sa.", "So."]


def fmt_date(iso: str) -> str:
    """'Mo., 20.10.2025, 18:00' in Europe/Berlin; the raw value when unparsable."""
    try:
        parsed = datetime.fromisoformat((iso or "").replace("Z", "+00:00"))
    except ValueError:
        return iso
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=BERLIN_TZ)
    local = parsed.astimezone(BERLIN_TZ)
    return f"{WEEKDAYS_DE[local.weekday()]}, {local:%d.%m.%Y}, {local:%H:%M}"


def fmt_timestamp(value: Optional[datetime]) -> str:
    if value is None:
        return "—"
    return value.astimezone(BERLIN_TZ).strftime("%d.%m.%y, %H:%M:%S")


def is_monday(slot: PickupSlot) -> bool:
    starts = slot.starts_at
    if starts is None:
        return False
    if starts.tzinfo is not None:
        starts = starts.astimezone(BERLIN_TZ)
    return starts.weekday() == 0


def is_unoccupied(slot: PickupSlot) -> bool:
    return slot.occupied == 0


def slot_sort_key(slot: PickupSlot):
    starts = slot.starts_at
    if starts is None:
        return (1, 0.0, slot.date)
    if starts.tzinfo is None:
        starts = starts.replace(tzinfo=BERLIN_TZ)
    return (0, starts.timestamp(), slot.date)


def visible_slots(slots: Iterable[PickupSlot], only_unoccupied: bool = True) -> List[PickupSlot]:
    """Sorted by start time; optionally only slots nobody has signed up for yet."""
    chosen = [s for s in slots if not only_unoccupied or is_unoccupied(s)]
    return sorted(chosen, key=slot_sort_key)


def avatar_url(path: Optional[str]) -> Optional[str]:
    if not path:
        return None
    return f"{UPSTREAM_BASE}{path}"


def slot_highlight(slot: PickupSlot) -> str:
    """Card accent: monday beats empty beats free."""
    if is_monday(slot):
        return "monday"
    if is_unoccupied(slot):
        return "empty"
    if slot.has_free:
        return "free"
    return ""


def slot_badge(slot: PickupSlot) -> str:
    return f"Frei: {slot.free}" if slot.has_free else "Vollständig gebucht"


def slot_message(slot: PickupSlot) -> str:
    """Text of the local notification for a newly free slot."""
    message = f"Neuer freier Slot: {fmt_date(slot.date)}"
    if slot.description:
        message += f" um {slot.description}"
    return message


@dataclass
class Totals:
    total: int
    with_free: int


def totals(slots: Iterable[PickupSlot]) -> Totals:
    slots = list(slots)
    return Totals(total=len(slots), with_free=sum(1 for s in slots if s.has_free))


__all__ = [
    "BERLIN_TZ",
    "fmt_date",
    "fmt_timestamp",
    "is_monday",
    "is_unoccupied",
    "visible_slots",
    "avatar_url",
    "slot_highlight",
    "slot_badge",
    "slot_message",
    "Totals",
    "totals",
]
