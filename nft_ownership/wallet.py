# nft_ownership/wallet.py
"""
Wallet provider boundary.

The orchestrator and the address hook only need three things from a wallet:
the current address, an accounts-changed notification, and (for the address
challenge) the ability to sign a message. `LocalWallet` provides them from
an in-process eth-account key, which is what scripts and tests use.
"""
from __future__ import annotations

import enum
import logging
from typing import Callable, List, Optional, Protocol

from eth_account import Account
from eth_account.messages import encode_defunct

from .errors import WalletError

logger = logging.getLogger(__name__)

AccountsChangedCallback = Callable[[str], None]


class ConnectionStatus(str, enum.Enum):
    NOT_CONNECTED = "notConnected"
    INITIALIZING = "initializing"
    CONNECTING = "connecting"
    CONNECTED = "connected"
    UNAVAILABLE = "unavailable"


class WalletProvider(Protocol):
    @property
    def status(self) -> ConnectionStatus:
        ...

    @property
    def address(self) -> str:
        ...

    def on_accounts_changed(self, callback: AccountsChangedCallback) -> Callable[[], None]:
        ...

    def sign_message(self, message: str) -> str:
        ...


class LocalWallet:
    def __init__(self, private_key: Optional[str] = None) -> None:
        self._account = Account.from_key(private_key) if private_key else None
        self._status = ConnectionStatus.NOT_CONNECTED if self._account else ConnectionStatus.UNAVAILABLE
        self._listeners: List[AccountsChangedCallback] = []

    @property
    def status(self) -> ConnectionStatus:
        return self._status

    @property
    def address(self) -> str:
        if self._status != ConnectionStatus.CONNECTED or self._account is None:
            return ""
        return self._account.address.lower()

    def on_accounts_changed(self, callback: AccountsChangedCallback) -> Callable[[], None]:
        self._listeners.append(callback)

        def unsubscribe() -> None:
            if callback in self._listeners:
                self._listeners.remove(callback)

        return unsubscribe

    def _notify(self) -> None:
        address = self.address
        for callback in list(self._listeners):
            callback(address)

    def connect(self) -> None:
        if self._account is None:
            raise WalletError("No wallet available")
        if self._status == ConnectionStatus.CONNECTED:
            return
        self._status = ConnectionStatus.CONNECTED
        logger.info("Wallet connected: %s", self.address)
        self._notify()

    def disconnect(self) -> None:
        if self._status != ConnectionStatus.CONNECTED:
            return
        self._status = ConnectionStatus.NOT_CONNECTED
        logger.info("Wallet disconnected")
        self._notify()

    def switch_account(self, private_key: str) -> None:
        self._account = Account.from_key(private_key)
        if self._status == ConnectionStatus.UNAVAILABLE:
            self._status = ConnectionStatus.NOT_CONNECTED
        logger.info("Wallet account switched to %s", self._account.address.lower())
        if self._status == ConnectionStatus.CONNECTED:
            self._notify()

    def sign_message(self, message: str) -> str:
        if self._status != ConnectionStatus.CONNECTED or self._account is None:
            raise WalletError("Wallet is not connected")
        signed = self._account.sign_message(encode_defunct(text=message))
        return "0x" + signed.signature.hex().removeprefix("0x")
