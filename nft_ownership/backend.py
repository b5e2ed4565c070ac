# nft_ownership/backend.py
"""
HTTP client for the backend authority.

Implements both consumed contracts:

- OwnershipVerifier: `submit(claims) -> bool`
- AddressAuthority: `is_verified(address) -> bool`, `verify(address) -> bool`

Every failure (transport, non-2xx, malformed body) surfaces as
`BackendError`, never as a boolean.
"""
from __future__ import annotations

import asyncio
import logging
from typing import Any, Dict, List, Optional, Protocol

import requests

from .config import BACKEND_PRINCIPAL, BACKEND_URL, HTTP_TIMEOUT
from .errors import AddressVerificationError, BackendError, WalletError
from .models import OwnershipClaim
from .wallet import WalletProvider

logger = logging.getLogger(__name__)


class OwnershipVerifier(Protocol):
    async def submit(self, claims: List[OwnershipClaim]) -> bool:
        ...


class AddressAuthority(Protocol):
    async def is_verified(self, address: str) -> bool:
        ...

    async def verify(self, address: str) -> bool:
        ...


class BackendClient:
    def __init__(
        self,
        wallet: WalletProvider,
        base_url: str = BACKEND_URL,
        principal: str = BACKEND_PRINCIPAL,
        timeout: float = HTTP_TIMEOUT,
        session: Optional[requests.Session] = None,
    ) -> None:
        self.wallet = wallet
        self.base_url = base_url.rstrip("/")
        self.principal = principal
        self.timeout = timeout
        self._http = session or requests

    def _request(self, method: str, path: str, json: Optional[dict] = None) -> Dict[str, Any]:
        url = f"{self.base_url}/{path.lstrip('/')}"
        try:
            r = self._http.request(
                method,
                url,
                json=json,
                headers={"X-Principal": self.principal},
                timeout=self.timeout,
            )
        except requests.RequestException as e:
            raise BackendError(f"Backend request failed: {e}") from e

        if r.status_code >= 400:
            try:
                err_body = r.json()
            except ValueError:
                err_body = None
            detail = err_body.get("detail", r.text) if isinstance(err_body, dict) else r.text
            raise BackendError(f"{method} {path} -> {r.status_code}: {detail}", r.status_code)

        try:
            body = r.json()
        except ValueError as e:
            raise BackendError(f"{method} {path} returned non-JSON body") from e
        if not isinstance(body, dict):
            raise BackendError(f"{method} {path} returned unexpected body")
        return body

    @staticmethod
    def _flag(body: Dict[str, Any], key: str) -> bool:
        value = body.get(key)
        if not isinstance(value, bool):
            raise BackendError(f"Backend response missing boolean '{key}'")
        return value

    # ------------------------------------------------------------
    # OwnershipVerifier
    # ------------------------------------------------------------

    async def submit(self, claims: List[OwnershipClaim]) -> bool:
        if not claims:
            raise BackendError("At least one ownership claim is required")
        payload = {"nfts": [c.model_dump() for c in claims]}
        body = await asyncio.to_thread(self._request, "POST", "/api/nfts", payload)
        return self._flag(body, "valid")

    # ------------------------------------------------------------
    # AddressAuthority
    # ------------------------------------------------------------

    async def is_verified(self, address: str) -> bool:
        body = await asyncio.to_thread(
            self._request, "GET", f"/api/addresses/{address.lower()}/verified"
        )
        return self._flag(body, "verified")

    async def verify(self, address: str) -> bool:
        """
        Signature challenge: fetch a one-time message from the backend, have
        the wallet sign it, and send the signature back for recovery.
        """
        address = address.lower()
        challenge = await asyncio.to_thread(
            self._request, "POST", "/api/addresses/challenge", {"address": address}
        )
        message = challenge.get("message")
        if not isinstance(message, str) or not message:
            raise BackendError("Backend returned no challenge message")

        try:
            signature = self.wallet.sign_message(message)
        except WalletError as e:
            raise AddressVerificationError(f"Wallet could not sign challenge: {e}") from e

        body = await asyncio.to_thread(
            self._request,
            "POST",
            "/api/addresses/verify",
            {"address": address, "message": message, "signature": signature},
        )
        verified = self._flag(body, "verified")
        logger.info("Address %s verification result: %s", address, verified)
        return verified
