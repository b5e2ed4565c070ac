# nft_ownership/wallet_area.py
"""
Wires the wallet, the persisted NFT URL, the ownership pipeline and the
address hook together, and exposes one immutable snapshot of their state.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from .address_verification import AddressVerificationHook
from .backend import AddressAuthority, BackendClient, OwnershipVerifier
from .config import NFT_URL_KEY
from .errors import ErrorReporter, handle_error
from .metadata import AlchemyMetadataFetcher, MetadataFetcher
from .models import AssetReference, FetchOutcome, Validity
from .orchestrator import PipelineState, VerificationOrchestrator
from .store import PersistentInputStore
from .wallet import ConnectionStatus, WalletProvider


@dataclass(frozen=True)
class WalletAreaState:
    status: ConnectionStatus
    address: str
    is_address_verified: Validity
    nft_url: str
    reference: Optional[AssetReference]
    outcome: Optional[FetchOutcome]
    validity: Validity
    pipeline: PipelineState

    @property
    def show_verify_button(self) -> bool:
        return self.is_address_verified is False

    @property
    def indicator(self) -> Optional[str]:
        if self.reference is None:
            return None
        if self.validity is True:
            return "valid"
        if self.validity is False:
            return "invalid"
        return "pending"


class WalletArea:
    def __init__(
        self,
        wallet: WalletProvider,
        store: PersistentInputStore,
        fetcher: MetadataFetcher,
        verifier: OwnershipVerifier,
        authority: AddressAuthority,
        report_error: ErrorReporter = handle_error,
    ) -> None:
        self.wallet = wallet
        self.store = store
        self.nft_url = store.get(NFT_URL_KEY, "")
        self.pipeline = VerificationOrchestrator(fetcher, verifier, wallet, report_error)
        self.address_hook = AddressVerificationHook(authority, wallet, report_error)

    @classmethod
    def from_config(cls, wallet: WalletProvider, store: PersistentInputStore) -> "WalletArea":
        backend = BackendClient(wallet)
        return cls(wallet, store, AlchemyMetadataFetcher(), backend, backend)

    def start(self) -> None:
        """Restore the persisted URL and run the initial lookups. Needs a running loop."""
        self.address_hook.start()
        self.pipeline.set_input(self.nft_url)

    def set_nft_url(self, raw: str) -> None:
        self.nft_url = raw
        self.store.set(NFT_URL_KEY, raw)
        self.pipeline.set_input(raw)

    async def verify_address(self) -> bool:
        return await self.address_hook.verify()

    async def settle(self) -> None:
        await self.pipeline.drain()
        await self.address_hook.drain()

    def snapshot(self) -> WalletAreaState:
        return WalletAreaState(
            status=self.wallet.status,
            address=self.wallet.address,
            is_address_verified=self.address_hook.is_verified,
            nft_url=self.nft_url,
            reference=self.pipeline.reference,
            outcome=self.pipeline.outcome,
            validity=self.pipeline.validity,
            pipeline=self.pipeline.state,
        )

    def close(self) -> None:
        self.pipeline.close()
        self.address_hook.close()
