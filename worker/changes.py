"""
Detect slots that became free since the previous poll.

After a cold start the baseline is empty, so every slot that is currently free
counts as newly free and notifies once.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Iterable, List

from core.models import PickupSlot

EMAIL_SUBJECT = "Neue freie Foodsharing Abhol-Slots!"


@dataclass
class ChangeSet:
    now_free_keys: List[str]
    newly_free: List[PickupSlot] = field(default_factory=list)

    @property
    def newly_free_keys(self) -> List[str]:
        return [s.key for s in self.newly_free]


def free_keys(slots: Iterable[PickupSlot]) -> List[str]:
    """Keys of all slots with a free place, first occurrence wins."""
    return list(dict.fromkeys(s.key for s in slots if s.has_free))


def detect_changes(slots: Iterable[PickupSlot], previous_keys: Iterable[str]) -> ChangeSet:
    slots = list(slots)
    previous = set(previous_keys)
    now_keys = free_keys(slots)

    by_key = {}
    for slot in slots:
        if slot.has_free:
            by_key.setdefault(slot.key, slot)

    newly = [by_key[key] for key in now_keys if key not in previous]
    return ChangeSet(now_free_keys=now_keys, newly_free=newly)


def email_body(slots: Iterable[PickupSlot]) -> str:
    return "\n".join(f"{s.date}: {s.description or ''}" for s in slots)


__all__ = ["EMAIL_SUBJECT", "ChangeSet", "free_keys", "detect_changes", "email_body"]
