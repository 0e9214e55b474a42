"""Per-client UI preferences kept in durable client storage."""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from shared.storage import KeyValueStorage

DARK_MODE_KEY = "darkMode"
WALLET_CONNECTED_KEY = "walletConnected"


class Preferences:
    """Boolean flags stored as "true"/"false" strings.

    ``wallet_connected`` is only a sentinel that a wallet was connected
    before; clearing it deletes the key.
    """

    def __init__(self, storage: KeyValueStorage) -> None:
        self._storage = storage

    @property
    def dark_mode(self) -> bool:
        return self._storage.get(DARK_MODE_KEY) == "true"

    @dark_mode.setter
    def dark_mode(self, enabled: bool) -> None:
        self._storage.set(DARK_MODE_KEY, "true" if enabled else "false")

    @property
    def wallet_connected(self) -> bool:
        return self._storage.get(WALLET_CONNECTED_KEY) == "true"

    @wallet_connected.setter
    def wallet_connected(self, connected: bool) -> None:
        if connected:
            self._storage.set(WALLET_CONNECTED_KEY, "true")
        else:
            self._storage.delete(WALLET_CONNECTED_KEY)

    def as_dict(self) -> dict[str, bool]:
        return {"dark_mode": self.dark_mode, "wallet_connected": self.wallet_connected}
