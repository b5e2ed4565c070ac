# nft_ownership/orchestrator.py
"""
Verification pipeline: asset reference -> metadata -> ownership verdict.

Every input or address change bumps a monotonic generation counter. Each
pipeline run captures the generation it was started for and re-checks it
before every state write; a run whose generation is no longer current has
its results dropped. That check is the only synchronization in here: runs
for superseded references are never cancelled, they just lose the right
to write.
"""
from __future__ import annotations

import asyncio
import enum
import logging
from typing import Coroutine, Optional, Set

from .backend import OwnershipVerifier
from .config import HTTP_TIMEOUT
from .errors import BackendError, ErrorReporter, MetadataFetchError, handle_error
from .metadata import MetadataFetcher
from .models import (
    AssetReference,
    FetchError,
    FetchOutcome,
    Metadata,
    OwnershipClaim,
    Validity,
)
from .parser import parse_asset_url
from .wallet import WalletProvider

logger = logging.getLogger(__name__)


def _fetch_failure_message(err: Exception) -> str:
    if isinstance(err, asyncio.TimeoutError):
        return "Metadata lookup timed out"
    if isinstance(err, MetadataFetchError):
        return str(err) or "Metadata lookup failed"
    return f"Metadata lookup failed: {err!r}"


def _verification_error(err: Exception) -> BackendError:
    if isinstance(err, BackendError):
        return err
    if isinstance(err, asyncio.TimeoutError):
        return BackendError("Ownership verification timed out")
    return BackendError(f"Ownership verification failed: {err!r}")


class PipelineState(str, enum.Enum):
    IDLE = "idle"
    PARSED = "parsed"
    METADATA_READY = "metadata_ready"
    FETCH_FAILED = "fetch_failed"
    VERIFICATION_PENDING = "verification_pending"
    VERIFIED = "verified"
    VERIFICATION_FAILED = "verification_failed"


class VerificationOrchestrator:
    def __init__(
        self,
        fetcher: MetadataFetcher,
        verifier: OwnershipVerifier,
        wallet: WalletProvider,
        report_error: ErrorReporter = handle_error,
        timeout: float = HTTP_TIMEOUT,
    ) -> None:
        self._fetcher = fetcher
        self._verifier = verifier
        self._report_error = report_error
        self._timeout = timeout

        self._generation = 0
        self._tasks: Set[asyncio.Task] = set()

        self.reference: Optional[AssetReference] = None
        self.outcome: Optional[FetchOutcome] = None
        self.validity: Validity = None
        self._state = PipelineState.IDLE

        self.address = (wallet.address or "").lower()
        self._unsubscribe = wallet.on_accounts_changed(self.set_address)

    # ------------------------------------------------------------
    # Read side
    # ------------------------------------------------------------

    @property
    def generation(self) -> int:
        return self._generation

    @property
    def state(self) -> PipelineState:
        return self._state

    def is_current(self, generation: int) -> bool:
        return generation == self._generation

    # ------------------------------------------------------------
    # Triggers
    # ------------------------------------------------------------

    def set_input(self, raw: str) -> Optional[asyncio.Task]:
        """
        Re-derive the reference from raw input. Only a structural change of
        the reference starts a new generation; editing the input into an
        equivalent URL is a no-op.
        """
        reference = parse_asset_url(raw)
        if reference == self.reference:
            return None

        generation = self._bump()
        self.reference = reference
        self.outcome = None
        self.validity = None

        if reference is None:
            self._state = PipelineState.IDLE
            return None

        self._state = PipelineState.PARSED
        return self._spawn(self._run(generation, reference, self.address, fetch=True))

    def set_address(self, address: str) -> Optional[asyncio.Task]:
        """
        Wallet account changed. With the reference unchanged, an existing
        Metadata outcome is reused and only the ownership check re-runs.
        """
        address = (address or "").lower()
        if address == self.address:
            return None

        generation = self._bump()
        self.address = address
        self.validity = None

        if self.reference is None:
            return None

        if isinstance(self.outcome, Metadata):
            self._state = PipelineState.METADATA_READY
            return self._spawn(self._run(generation, self.reference, address, fetch=False))

        self.outcome = None
        self._state = PipelineState.PARSED
        return self._spawn(self._run(generation, self.reference, address, fetch=True))

    async def drain(self) -> None:
        """Wait until no pipeline run is outstanding."""
        while True:
            pending = [t for t in self._tasks if not t.done()]
            if not pending:
                return
            await asyncio.gather(*pending, return_exceptions=True)

    def close(self) -> None:
        self._unsubscribe()
        self._bump()
        for task in list(self._tasks):
            task.cancel()

    # ------------------------------------------------------------
    # Pipeline
    # ------------------------------------------------------------

    def _bump(self) -> int:
        self._generation += 1
        return self._generation

    def _spawn(self, coro: Coroutine) -> asyncio.Task:
        task = asyncio.get_running_loop().create_task(coro)
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    def _discard(self, generation: int, step: str) -> None:
        logger.debug(
            "Dropping stale %s result (generation %d, current %d)",
            step, generation, self._generation,
        )

    async def _run(
        self,
        generation: int,
        reference: AssetReference,
        address: str,
        fetch: bool,
    ) -> None:
        if fetch:
            try:
                metadata = await asyncio.wait_for(
                    self._fetcher.fetch(
                        reference.network, reference.contract_address, reference.token_id,
                    ),
                    timeout=self._timeout,
                )
            except Exception as e:
                if not self.is_current(generation):
                    self._discard(generation, "metadata")
                    return
                message = _fetch_failure_message(e)
                logger.warning("Metadata fetch failed for %s: %s", reference, message)
                self.outcome = FetchError(message)
                self._state = PipelineState.FETCH_FAILED
                return

            if not self.is_current(generation):
                self._discard(generation, "metadata")
                return
            self.outcome = Metadata(metadata)
            self._state = PipelineState.METADATA_READY

        if not self.is_current(generation):
            self._discard(generation, "pending")
            return
        claim = OwnershipClaim.for_reference(reference, address)
        self._state = PipelineState.VERIFICATION_PENDING
        try:
            valid = await asyncio.wait_for(
                self._verifier.submit([claim]), timeout=self._timeout
            )
        except Exception as e:
            if not self.is_current(generation):
                self._discard(generation, "ownership")
                return
            self._report_error(_verification_error(e), "Error while verifying NFT ownership!")
            self.validity = False
            self._state = PipelineState.VERIFICATION_FAILED
            return

        if not self.is_current(generation):
            self._discard(generation, "ownership")
            return
        self.validity = bool(valid)
        self._state = PipelineState.VERIFIED
