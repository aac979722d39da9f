"""
Unit tests for the settings and shortcut stores.
"""

import json

import pytest

from bashshortcuts.errors import CommunicationError
from bashshortcuts.shortcut import Shortcut
from bashshortcuts.store import SHORTCUTS_KEY, SettingsStore, ShortcutStore


@pytest.mark.unit
class TestSettingsStore:
    """Test generic key-value settings."""

    def test_get_default(self):
        store = SettingsStore()

        assert store.get("missing", 42) == 42

    def test_set_and_get(self):
        store = SettingsStore()
        store.set("theme", "dark")

        assert store.get("theme") == "dark"

    def test_values_are_copied(self):
        """Test callers cannot mutate stored values through aliases."""
        store = SettingsStore()
        value = {"a": [1]}
        store.set("key", value)
        value["a"].append(2)

        fetched = store.get("key")
        fetched["a"].append(3)

        assert store.get("key") == {"a": [1]}

    def test_persists_to_file(self, tmp_path):
        """Test a file-backed store survives a reload."""
        path = tmp_path / "nested" / "settings.json"
        SettingsStore(path).set("count", 3)

        assert json.loads(path.read_text())["count"] == 3
        assert SettingsStore(path).get("count") == 3

    def test_corrupt_file_raises(self, tmp_path):
        """Test unreadable settings surface as CommunicationError."""
        path = tmp_path / "settings.json"
        path.write_text("{not json")

        with pytest.raises(CommunicationError):
            SettingsStore(path)

    def test_non_object_file_raises(self, tmp_path):
        path = tmp_path / "settings.json"
        path.write_text("[1, 2]")

        with pytest.raises(CommunicationError):
            SettingsStore(path)

    def test_writers_sharing_a_file_keep_each_others_keys(self, tmp_path, make_shortcut):
        """Test a set on one instance does not drop keys written by another."""
        path = tmp_path / "settings.json"
        engine = SettingsStore(path)
        ShortcutStore(SettingsStore(path)).add_shortcut(make_shortcut("x"))

        engine.set("runningPids", {})

        reloaded = ShortcutStore(SettingsStore(path))
        assert list(reloaded.get_shortcuts()) == ["x"]
        assert SettingsStore(path).get("runningPids") == {}

    def test_get_sees_writes_from_another_instance(self, tmp_path):
        path = tmp_path / "settings.json"
        reader = SettingsStore(path)

        SettingsStore(path).set("count", 7)

        assert reader.get("count") == 7


@pytest.mark.unit
class TestShortcutStore:
    """Test shortcut CRUD."""

    @pytest.fixture
    def store(self):
        return ShortcutStore(SettingsStore())

    def test_add_and_get_round_trip(self, store):
        """Test an added shortcut comes back equal, id unchanged."""
        shortcut = Shortcut.create("Backup", "tar czf /tmp/b.tgz /home", position=1, hooks=["sync"])
        store.add_shortcut(shortcut)

        fetched = store.get_shortcuts()[shortcut.id]

        assert fetched == shortcut
        assert fetched.id == shortcut.id
        assert fetched.hooks == ("sync",)

    def test_add_returns_updated_dictionary(self, store, make_shortcut):
        result = store.add_shortcut(make_shortcut("s1"))

        assert list(result) == ["s1"]

    def test_add_duplicate_rejected(self, store, make_shortcut):
        store.add_shortcut(make_shortcut("s1"))

        with pytest.raises(ValueError):
            store.add_shortcut(make_shortcut("s1"))

    def test_get_shortcuts_ordered_by_position(self, store, make_shortcut):
        store.add_shortcut(make_shortcut("late", position=9))
        store.add_shortcut(make_shortcut("early", position=0))

        assert list(store.get_shortcuts()) == ["early", "late"]

    def test_get_shortcuts_returns_copy(self, store, make_shortcut):
        """Test editing the returned dictionary does not touch the store."""
        store.add_shortcut(make_shortcut("s1"))
        shortcuts = store.get_shortcuts()
        del shortcuts["s1"]

        assert "s1" in store.get_shortcuts()

    def test_mod_replaces_record(self, store, make_shortcut):
        original = make_shortcut("s1", cmd="true")
        store.add_shortcut(original)

        store.mod_shortcut(original.replace(cmd="false", name="Renamed"))

        fetched = store.get_shortcut("s1")
        assert fetched.cmd == "false"
        assert fetched.name == "Renamed"

    def test_mod_unknown_raises(self, store, make_shortcut):
        with pytest.raises(KeyError):
            store.mod_shortcut(make_shortcut("ghost"))

    def test_remove_by_record_or_id(self, store, make_shortcut):
        store.add_shortcut(make_shortcut("s1"))
        store.add_shortcut(make_shortcut("s2"))

        store.remove_shortcut(make_shortcut("s1"))
        result = store.remove_shortcut("s2")

        assert result == {}

    def test_remove_unknown_raises(self, store):
        with pytest.raises(KeyError):
            store.remove_shortcut("ghost")

    def test_set_shortcuts_replaces_all(self, store, make_shortcut):
        store.add_shortcut(make_shortcut("old"))

        store.set_shortcuts({"new": make_shortcut("new")})

        assert list(store.get_shortcuts()) == ["new"]

    def test_set_shortcuts_rejects_mismatched_keys(self, store, make_shortcut):
        with pytest.raises(ValueError):
            store.set_shortcuts({"wrong": make_shortcut("s1")})

    def test_stored_in_wire_form(self, make_shortcut):
        settings = SettingsStore()
        ShortcutStore(settings).add_shortcut(make_shortcut("s1", is_app=True))

        raw = settings.get(SHORTCUTS_KEY)
        assert raw["s1"]["isApp"] is True

    def test_corrupt_entry_raises(self):
        settings = SettingsStore()
        settings.set(SHORTCUTS_KEY, {"s1": {"name": "no id"}})

        with pytest.raises(CommunicationError):
            ShortcutStore(settings).get_shortcuts()
