"""Tests for per-client UI preferences."""

from marketplace.preferences import DARK_MODE_KEY, WALLET_CONNECTED_KEY, Preferences
from shared.storage import JsonFileStorage, MemoryStorage


class TestPreferences:
    def test_defaults_are_off(self):
        prefs = Preferences(MemoryStorage())

        assert prefs.as_dict() == {"dark_mode": False, "wallet_connected": False}

    def test_dark_mode_is_stored_as_string(self):
        storage = MemoryStorage()
        prefs = Preferences(storage)

        prefs.dark_mode = True
        assert storage.get(DARK_MODE_KEY) == "true"
        assert prefs.dark_mode is True

        prefs.dark_mode = False
        assert storage.get(DARK_MODE_KEY) == "false"
        assert prefs.dark_mode is False

    def test_clearing_wallet_deletes_key(self):
        storage = MemoryStorage()
        prefs = Preferences(storage)

        prefs.wallet_connected = True
        assert storage.get(WALLET_CONNECTED_KEY) == "true"

        prefs.wallet_connected = False
        assert storage.get(WALLET_CONNECTED_KEY) is None

    def test_unexpected_stored_value_reads_as_false(self):
        prefs = Preferences(MemoryStorage({DARK_MODE_KEY: "yes"}))

        assert prefs.dark_mode is False

    def test_survives_reload_from_disk(self, tmp_path):
        path = tmp_path / "client.json"
        Preferences(JsonFileStorage(path)).dark_mode = True

        reloaded = Preferences(JsonFileStorage(path))

        assert reloaded.dark_mode is True
        assert reloaded.wallet_connected is False
