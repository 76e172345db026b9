from conftest import pickup
from core.models import PickupSlot
from worker.changes import detect_changes, email_body, free_keys


def _slot(date, store_id="1", total=2, occupied=0, description="Abholung"):
    return PickupSlot.from_api(pickup(date, total=total, occupied=occupied, description=description), store_id=store_id)


def test_only_newly_free_slots_are_reported():
    a = _slot("2025-10-20T18:00:00+02:00")
    b = _slot("2025-10-21T18:00:00+02:00")

    changes = detect_changes([a, b], previous_keys=[a.key])

    assert changes.newly_free_keys == [b.key]
    assert changes.now_free_keys == [a.key, b.key]


def test_same_result_twice_reports_nothing():
    slots = [_slot("2025-10-20T18:00:00+02:00"), _slot("2025-10-21T18:00:00+02:00")]

    first = detect_changes(slots, previous_keys=[])
    second = detect_changes(slots, previous_keys=first.now_free_keys)

    assert len(first.newly_free) == 2
    assert second.newly_free == []


def test_cold_start_reports_every_free_slot():
    slots = [_slot("a"), _slot("b", occupied=2), _slot("c", store_id="2")]

    changes = detect_changes(slots, previous_keys=[])

    assert changes.newly_free_keys == ["1-a", "2-c"]


def test_slot_that_fills_and_frees_again_notifies_again():
    free = _slot("a")
    full = _slot("a", occupied=2)

    after_full = detect_changes([full], previous_keys=[free.key])
    after_free = detect_changes([free], previous_keys=after_full.now_free_keys)

    assert after_full.now_free_keys == []
    assert after_free.newly_free_keys == [free.key]


def test_same_date_in_two_stores_are_distinct():
    assert free_keys([_slot("a", store_id="1"), _slot("a", store_id="2"), _slot("a", store_id="1")]) == ["1-a", "2-a"]


def test_email_body_lists_date_and_description():
    body = email_body([_slot("2025-10-20T18:00:00+02:00", description="Abend"), _slot("x", description=None)])
    assert body == "2025-10-20T18:00:00+02:00: Abend\nx: "
