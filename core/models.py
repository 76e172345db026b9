"""
Pickup slot model and the two response shapes the proxy can return.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Dict, List, Optional, Union


@dataclass
class Occupant:
    name: Optional[str] = None
    avatar: Optional[str] = None
    is_confirmed: bool = False

    @classmethod
    def from_api(cls, raw: Dict) -> "Occupant":
        profile = raw.get("profile") or {}
        return cls(
            name=profile.get("name"),
            avatar=profile.get("avatar"),
            is_confirmed=bool(raw.get("isConfirmed")),
        )


@dataclass
class PickupSlot:
    """One pickup window at one store."""

    store_id: str
    date: str
    description: Optional[str] = None
    total_slots: int = 0
    occupied_slots: List[Occupant] = field(default_factory=list)
    is_available: Optional[bool] = None

    @classmethod
    def from_api(cls, raw: Dict, store_id: str = "") -> "PickupSlot":
        occupied = raw.get("occupiedSlots") or []
        try:
            total = int(raw.get("totalSlots") or 0)
        except (TypeError, ValueError):
            total = 0
        is_available = raw.get("isAvailable")
        return cls(
            store_id=str(store_id or raw.get("storeId") or ""),
            date=str(raw.get("date") or ""),
            description=raw.get("description") or None,
            total_slots=total,
            occupied_slots=[Occupant.from_api(o) for o in occupied if isinstance(o, dict)],
            is_available=None if is_available is None else bool(is_available),
        )

    @property
    def occupied(self) -> int:
        return len(self.occupied_slots)

    @property
    def free(self) -> int:
        return max(0, self.total_slots - self.occupied)

    @property
    def has_free(self) -> bool:
        return bool(self.is_available) or self.free > 0

    @property
    def key(self) -> str:
        """Identity used for change detection; must not vary between polls."""
        return f"{self.store_id}-{self.date}"

    @property
    def starts_at(self) -> Optional[datetime]:
        if not self.date:
            return None
        try:
            return datetime.fromisoformat(self.date.replace("Z", "+00:00"))
        except ValueError:
            return None


@dataclass
class StoreResult:
    store_id: str
    pickups: List[Dict]
    status: int
    error: Optional[str] = None

    def to_payload(self) -> Dict:
        payload = {"storeId": self.store_id, "pickups": self.pickups, "status": self.status}
        if self.error:
            payload["error"] = self.error
        return payload


@dataclass
class SingleResult:
    pickups: List[Dict]
    store_id: str = ""


@dataclass
class MultiResult:
    results: List[StoreResult]

    def to_payload(self) -> Dict:
        return {"multi": True, "results": [r.to_payload() for r in self.results]}


AggregatedResult = Union[SingleResult, MultiResult]


def parse_aggregated(payload, store_id: str = "") -> AggregatedResult:
    """
    Classify a proxy JSON payload as single or multi.

    Anything that is neither shape is treated as a single result without pickups.
    """
    if isinstance(payload, dict):
        if isinstance(payload.get("pickups"), list):
            return SingleResult(pickups=payload["pickups"], store_id=store_id)
        if payload.get("multi") and isinstance(payload.get("results"), list):
            results = []
            for entry in payload["results"]:
                if not isinstance(entry, dict):
                    continue
                pickups = entry.get("pickups")
                results.append(
                    StoreResult(
                        store_id=str(entry.get("storeId") or ""),
                        pickups=pickups if isinstance(pickups, list) else [],
                        status=int(entry.get("status") or 0),
                        error=entry.get("error"),
                    )
                )
            return MultiResult(results=results)
    return SingleResult(pickups=[], store_id=store_id)


def flatten_pickups(result: AggregatedResult) -> List[PickupSlot]:
    """Merge either shape into one flat list, tagging every slot with its store id."""
    if isinstance(result, MultiResult):
        return [
            PickupSlot.from_api(raw, store_id=r.store_id)
            for r in result.results
            for raw in r.pickups
            if isinstance(raw, dict)
        ]
    return [PickupSlot.from_api(raw, store_id=result.store_id) for raw in result.pickups if isinstance(raw, dict)]


__all__ = [
    "Occupant",
    "PickupSlot",
    "StoreResult",
    "SingleResult",
    "MultiResult",
    "AggregatedResult",
    "parse_aggregated",
    "flatten_pickups",
]
