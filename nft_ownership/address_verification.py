# nft_ownership/address_verification.py
"""
Tracks whether the connected wallet address is bound to the backend identity.

Runs independently of the ownership pipeline and is keyed only on the wallet
address. Results are applied only while the address they were requested for
is still the connected one, and only if no newer lookup or `verify()` call
started since; a generation counter tracks that, as in the orchestrator.
"""
from __future__ import annotations

import asyncio
import logging
from typing import Optional, Set

from .backend import AddressAuthority
from .config import HTTP_TIMEOUT
from .errors import (
    AddressVerificationError,
    ErrorReporter,
    handle_error,
)
from .models import Validity
from .wallet import WalletProvider

logger = logging.getLogger(__name__)


class AddressVerificationHook:
    def __init__(
        self,
        authority: AddressAuthority,
        wallet: WalletProvider,
        report_error: ErrorReporter = handle_error,
        timeout: float = HTTP_TIMEOUT,
    ) -> None:
        self._authority = authority
        self._report_error = report_error
        self._timeout = timeout
        self._tasks: Set[asyncio.Task] = set()
        self._generation = 0

        self.address = ""
        self.is_verified: Validity = None
        self._unsubscribe = wallet.on_accounts_changed(self.set_address)
        self._initial_address = (wallet.address or "").lower()

    def start(self) -> Optional[asyncio.Task]:
        """Kick off the lookup for the address the wallet had at construction."""
        return self.set_address(self._initial_address)

    def set_address(self, address: str) -> Optional[asyncio.Task]:
        address = (address or "").lower()
        if address == self.address:
            return None
        self._generation += 1
        self.address = address
        self.is_verified = None
        if not address:
            return None

        task = asyncio.get_running_loop().create_task(self._query(self._generation, address))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    async def _query(self, generation: int, address: str) -> None:
        try:
            verified = await asyncio.wait_for(
                self._authority.is_verified(address), timeout=self._timeout
            )
        except Exception as e:
            if generation == self._generation:
                self._report_error(e, "Error while checking wallet verification!")
            return

        if generation != self._generation:
            logger.debug("Dropping stale verification status for %s", address)
            return
        self.is_verified = bool(verified)

    async def verify(self) -> bool:
        """
        Run the signature challenge for the current address.

        Returns the resulting `is_verified`. Failures are reported through
        the error channel and leave the address unverified.
        """
        address = self.address
        if not address:
            self._report_error(
                AddressVerificationError("No wallet address connected"),
                "Error while verifying wallet!",
            )
            return False

        self._generation += 1
        generation = self._generation
        try:
            ok = await asyncio.wait_for(
                self._authority.verify(address), timeout=self._timeout
            )
            if not ok:
                raise AddressVerificationError("Signature was rejected by the backend")
        except Exception as e:
            if generation == self._generation:
                self._report_error(e, "Error while verifying wallet!")
                self.is_verified = False
            return False

        if generation != self._generation:
            logger.info("Verification of %s was superseded; result dropped", address)
            return False
        self.is_verified = True
        return True

    async def drain(self) -> None:
        while True:
            pending = [t for t in self._tasks if not t.done()]
            if not pending:
                return
            await asyncio.gather(*pending, return_exceptions=True)

    def close(self) -> None:
        self._unsubscribe()
        for task in list(self._tasks):
            task.cancel()
