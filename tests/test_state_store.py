import json
import logging

from core.state import (
    FREE_SLOTS_KEY,
    StateStore,
    load_free_keys,
    load_headers_blob,
    load_store_ids,
    save_free_keys,
    save_headers_blob,
    save_store_ids,
)


def test_missing_file_reads_as_empty(tmp_path):
    store = StateStore(tmp_path / "state.json")

    assert store.dump() == {}
    assert load_free_keys(store) == []
    assert load_store_ids(store) is None
    assert load_headers_blob(store) == ""


def test_values_survive_a_new_instance(tmp_path):
    path = tmp_path / "nested" / "state.json"
    store = StateStore(path)
    save_store_ids(store, "29441,29438")
    save_headers_blob(store, '{"accept": "application/json"}')
    save_free_keys(store, ["1-a", "2-b"])

    reopened = StateStore(path)

    assert load_store_ids(reopened) == "29441,29438"
    assert load_headers_blob(reopened) == '{"accept": "application/json"}'
    assert load_free_keys(reopened) == ["1-a", "2-b"]
    assert json.loads(path.read_text())[FREE_SLOTS_KEY] == ["1-a", "2-b"]
    assert [p.name for p in path.parent.iterdir()] == ["state.json"]


def test_corrupt_file_reads_as_empty(tmp_path, caplog):
    path = tmp_path / "state.json"
    path.write_text("{broken")

    with caplog.at_level(logging.WARNING, logger="state"):
        assert StateStore(path).dump() == {}
    assert any("unreadable" in r.getMessage() for r in caplog.records)


def test_wrong_types_fall_back_to_defaults(tmp_path):
    path = tmp_path / "state.json"
    path.write_text(json.dumps({"fs_prev_free_slots": "1-a", "fs_store_id": "  ", "fs_auth_headers": 5}))
    store = StateStore(path)

    assert load_free_keys(store) == []
    assert load_store_ids(store) is None
    assert load_headers_blob(store) == ""


def test_clear_removes_file(tmp_path):
    store = StateStore(tmp_path / "state.json")
    save_free_keys(store, ["1-a"])

    store.clear()
    store.clear()

    assert store.dump() == {}
