import os
import json
import tempfile
import pytest
from ccswitch.activation import ActivationError, SettingsFileActivator
from ccswitch.profiles import (
    ActiveProfileError, Profile, ProfileIndexError, ProfileStore, mask_token, validate_fields,
)
from fakes import RecordingActivator

def raw(path):
    with open(path, "rb") as f:
        return f.read()

def test_missing_file_is_empty_collection(activator):
    with tempfile.TemporaryDirectory() as td:
        store = ProfileStore(os.path.join(td, "sub", "configs.json"), activator)
        assert store.profiles() == []
        assert store.get_active() is None
        assert os.path.isdir(os.path.join(td, "sub"))

def test_corrupt_file_raises(activator):
    with tempfile.TemporaryDirectory() as td:
        path = os.path.join(td, "configs.json")
        with open(path, "w", encoding="utf-8") as f:
            f.write("[{broken")
        with pytest.raises(ValueError):
            ProfileStore(path, activator)

def test_add_round_trip(activator):
    with tempfile.TemporaryDirectory() as td:
        path = os.path.join(td, "configs.json")
        store = ProfileStore(path, activator)
        store.add("a", "https://a.example.com", "tok-a")
        added = store.add("b", "https://b.example.com", "tok-b")
        fresh = ProfileStore(path, activator).profiles()
        assert len(fresh) == 2
        assert fresh[-1] == added
        assert fresh[-1].is_active is False
        assert activator.applied == []

def test_file_format_field_order():
    with tempfile.TemporaryDirectory() as td:
        path = os.path.join(td, "configs.json")
        ProfileStore(path, RecordingActivator()).add("a", "u", "t")
        records = json.loads(raw(path))
        assert list(records[0]) == ["id", "name", "base_url", "token", "is_active"]
        assert records[0]["token"] == "t"

def test_records_without_id_get_one(activator):
    with tempfile.TemporaryDirectory() as td:
        path = os.path.join(td, "configs.json")
        with open(path, "w", encoding="utf-8") as f:
            json.dump([{"name": "old", "base_url": "u", "token": "t", "is_active": True}], f)
        p = ProfileStore(path, activator).get_active()
        assert p.name == "old"
        assert p.id

def test_switch_keeps_exactly_one_active(activator):
    with tempfile.TemporaryDirectory() as td:
        store = ProfileStore(os.path.join(td, "configs.json"), activator)
        for n in ("a", "b", "c"):
            store.add(n, "https://" + n, "tok-" + n)
        for i in (0, 2, 1, 1, 0):
            store.switch(i)
            active = [p for p in store.profiles() if p.is_active]
            assert len(active) == 1
            assert active[0].name == "abc"[i]
        assert [a[0] for a in activator.applied] == ["a", "c", "b", "b", "a"]

def test_switch_persists_before_activation_failure():
    with tempfile.TemporaryDirectory() as td:
        path = os.path.join(td, "configs.json")
        store = ProfileStore(path, RecordingActivator(fail_with=ActivationError("boom")))
        store.add("a", "u", "t")
        with pytest.raises(ActivationError):
            store.switch(0)
        assert ProfileStore(path, RecordingActivator()).get_active().name == "a"

@pytest.mark.parametrize("op", ["edit", "switch", "delete"])
def test_out_of_bounds_index_changes_nothing(activator, op):
    with tempfile.TemporaryDirectory() as td:
        path = os.path.join(td, "configs.json")
        store = ProfileStore(path, activator)
        store.add("a", "u", "t")
        store.add("b", "u", "t")
        before = raw(path)
        for index in (-1, len(store)):
            args = (index, "x", "y", "z") if op == "edit" else (index,)
            with pytest.raises(ProfileIndexError):
                getattr(store, op)(*args)
        assert raw(path) == before
        assert [p.name for p in store.profiles()] == ["a", "b"]
        assert activator.applied == []

def test_edit_inactive_does_not_apply(activator):
    with tempfile.TemporaryDirectory() as td:
        store = ProfileStore(os.path.join(td, "configs.json"), activator)
        store.add("a", "u", "t")
        p = store.edit(0, "a2", "u2", "t2")
        assert (p.name, p.base_url, p.token) == ("a2", "u2", "t2")
        assert activator.applied == []

def test_edit_active_reapplies_new_values(activator):
    with tempfile.TemporaryDirectory() as td:
        store = ProfileStore(os.path.join(td, "configs.json"), activator)
        store.add("a", "u", "t")
        store.switch(0)
        store.edit(0, "a", "u2", "t2")
        assert activator.applied[-1] == ("a", "u2", "t2")

def test_delete_shifts_indices(activator):
    with tempfile.TemporaryDirectory() as td:
        path = os.path.join(td, "configs.json")
        store = ProfileStore(path, activator)
        for n in ("a", "b", "c"):
            store.add(n, "u", "t")
        removed = store.delete(1)
        assert removed.name == "b"
        assert store.get(1).name == "c"
        assert [p.name for p in ProfileStore(path, activator).profiles()] == ["a", "c"]

def test_delete_active_is_refused(activator):
    with tempfile.TemporaryDirectory() as td:
        path = os.path.join(td, "configs.json")
        store = ProfileStore(path, activator)
        store.add("a", "u", "t")
        store.switch(0)
        before = raw(path)
        with pytest.raises(ActiveProfileError):
            store.delete(0)
        assert raw(path) == before
        assert store.get_active().name == "a"

def test_index_of_resolves_ids(activator):
    with tempfile.TemporaryDirectory() as td:
        store = ProfileStore(os.path.join(td, "configs.json"), activator)
        a = store.add("a", "u", "t")
        b = store.add("b", "u", "t")
        assert store.index_of(b.id) == 1
        store.delete(store.index_of(a.id))
        assert store.index_of(b.id) == 0
        with pytest.raises(ProfileIndexError):
            store.index_of(a.id)

def test_returned_profiles_are_copies(activator):
    with tempfile.TemporaryDirectory() as td:
        store = ProfileStore(os.path.join(td, "configs.json"), activator)
        store.add("a", "u", "t")
        p = store.get(0)
        p.is_active = True
        assert store.get_active() is None

def test_get_active_prefers_first_when_file_has_two():
    with tempfile.TemporaryDirectory() as td:
        path = os.path.join(td, "configs.json")
        records = [Profile("a", "u", "t", True).to_dict(), Profile("b", "u", "t", True).to_dict()]
        with open(path, "w", encoding="utf-8") as f:
            json.dump(records, f)
        assert ProfileStore(path, RecordingActivator()).get_active().name == "a"

def test_scenario_with_settings_file():
    with tempfile.TemporaryDirectory() as td:
        settings = os.path.join(td, ".claude", "settings.json")
        store = ProfileStore(os.path.join(td, "configs.json"), SettingsFileActivator(settings))
        store.add("prod", "https://api.example.com", "tok123")
        assert len(store) == 1 and store.get_active() is None

        store.switch(0)
        with open(settings, encoding="utf-8") as f:
            env = json.load(f)["env"]
        assert (env["ANTHROPIC_AUTH_TOKEN"], env["ANTHROPIC_BASE_URL"]) == ("tok123", "https://api.example.com")

        store.edit(0, "prod", "https://api2.example.com", "tok123")
        with open(settings, encoding="utf-8") as f:
            assert json.load(f)["env"]["ANTHROPIC_BASE_URL"] == "https://api2.example.com"

        with pytest.raises(ActiveProfileError):
            store.delete(0)
        assert len(store) == 1

def test_validate_fields():
    validate_fields("a", "u", "t")
    for args in (("", "u", "t"), ("a", " ", "t"), ("a", "u", "")):
        with pytest.raises(ValueError):
            validate_fields(*args)

def test_mask_token():
    assert mask_token("short") == "****"
    assert mask_token("12345678") == "****"
    assert mask_token("sk-ant-abcdef123456") == "sk-a****3456"

def test_string_is_active_is_rejected(activator):
    with tempfile.TemporaryDirectory() as td:
        path = os.path.join(td, "configs.json")
        with open(path, "w", encoding="utf-8") as f:
            json.dump([{"name": "a", "base_url": "u", "token": "t", "is_active": "false"}], f)
        with pytest.raises(ValueError) as exc:
            ProfileStore(path, activator)
        assert "is_active" in str(exc.value)

def test_non_object_record_is_rejected(activator):
    with tempfile.TemporaryDirectory() as td:
        path = os.path.join(td, "configs.json")
        with open(path, "w", encoding="utf-8") as f:
            json.dump(["a"], f)
        with pytest.raises(ValueError) as exc:
            ProfileStore(path, activator)
        assert "record 0" in str(exc.value)

def test_non_string_field_is_rejected(activator):
    with tempfile.TemporaryDirectory() as td:
        path = os.path.join(td, "configs.json")
        with open(path, "w", encoding="utf-8") as f:
            json.dump([{"name": "a", "base_url": "u", "token": 123, "is_active": False}], f)
        with pytest.raises(ValueError):
            ProfileStore(path, activator)

def break_saves(path):
    # a directory in place of the file makes every atomic replace fail
    os.remove(path)
    os.makedirs(path)

def test_failed_save_on_switch_skips_activation(activator):
    with tempfile.TemporaryDirectory() as td:
        path = os.path.join(td, "configs.json")
        store = ProfileStore(path, activator)
        store.add("a", "u", "t")
        break_saves(path)
        with pytest.raises(OSError):
            store.switch(0)
        assert activator.applied == []

def test_failed_save_on_edit_of_active_skips_activation(activator):
    with tempfile.TemporaryDirectory() as td:
        path = os.path.join(td, "configs.json")
        store = ProfileStore(path, activator)
        store.add("a", "u", "t")
        store.switch(0)
        break_saves(path)
        with pytest.raises(OSError):
            store.edit(0, "a", "u2", "t2")
        assert activator.applied == [("a", "u", "t")]

def test_id_operations(activator):
    with tempfile.TemporaryDirectory() as td:
        store = ProfileStore(os.path.join(td, "configs.json"), activator)
        a = store.add("a", "u", "t")
        b = store.add("b", "u", "t")
        store.delete_id(a.id)
        assert store.switch_id(b.id).is_active
        assert store.edit_id(b.id, "b2", "u2", "t2").name == "b2"
        assert store.get_id(b.id).base_url == "u2"
        with pytest.raises(ProfileIndexError):
            store.switch_id(a.id)

def test_locked_blocks_other_callers_between_lookup_and_edit(activator):
    import threading
    with tempfile.TemporaryDirectory() as td:
        store = ProfileStore(os.path.join(td, "configs.json"), activator)
        a = store.add("a", "u", "t")
        b = store.add("b", "u", "t")
        store.add("c", "u", "t")
        deleter = threading.Thread(target=store.delete_id, args=(a.id,))
        with store.locked():
            index = store.index_of(b.id)
            deleter.start()
            deleter.join(timeout=0.2)
            assert deleter.is_alive()
            store.edit(index, "b2", "u", "t")
        deleter.join(timeout=5)
        assert [p.name for p in store.profiles()] == ["b2", "c"]
