# nft_ownership/metadata.py
"""
Metadata indexer client (Alchemy NFT API, getNFTMetadata).

`requests` is blocking, so each call runs in a worker thread via
`asyncio.to_thread`; the event loop stays free while a lookup is in flight.
"""
from __future__ import annotations

import asyncio
import logging
from typing import Any, Dict, Optional, Protocol

import requests

from .config import ALCHEMY_API_KEY, ALCHEMY_NFT_API_VERSION, HTTP_TIMEOUT
from .errors import MetadataFetchError
from .models import AssetMetadata

logger = logging.getLogger(__name__)

# OpenSea network slug -> Alchemy network prefix
_ALCHEMY_NETWORKS = {
    "ethereum": "eth-mainnet",
    "goerli": "eth-goerli",
    "sepolia": "eth-sepolia",
    "matic": "polygon-mainnet",
    "mumbai": "polygon-mumbai",
    "arbitrum": "arb-mainnet",
    "optimism": "opt-mainnet",
    "base": "base-mainnet",
}


class MetadataFetcher(Protocol):
    async def fetch(self, network: str, contract_address: str, token_id: int) -> AssetMetadata:
        ...


def alchemy_network(network: str) -> str:
    return _ALCHEMY_NETWORKS.get(network.lower(), f"eth-{network.lower()}")


class AlchemyMetadataFetcher:
    def __init__(
        self,
        api_key: str = ALCHEMY_API_KEY,
        api_version: str = ALCHEMY_NFT_API_VERSION,
        timeout: float = HTTP_TIMEOUT,
        session: Optional[requests.Session] = None,
    ) -> None:
        self.api_key = api_key
        self.api_version = api_version
        self.timeout = timeout
        self._http = session or requests

    def _url(self, network: str) -> str:
        return (
            f"https://{alchemy_network(network)}.g.alchemy.com"
            f"/nft/{self.api_version}/{self.api_key}/getNFTMetadata"
        )

    def _get(self, network: str, contract_address: str, token_id: int) -> Dict[str, Any]:
        url = self._url(network)
        try:
            r = self._http.get(
                url,
                params={"contractAddress": contract_address, "tokenId": str(token_id)},
                headers={"Accept": "application/json"},
                timeout=self.timeout,
            )
        except requests.RequestException as e:
            raise MetadataFetchError(f"Metadata request failed: {e}") from e

        if r.status_code != 200:
            detail = r.text[:200] if r.text else r.reason
            raise MetadataFetchError(f"Metadata lookup failed ({r.status_code}): {detail}")

        try:
            data = r.json()
        except ValueError as e:
            raise MetadataFetchError("Metadata response was not JSON") from e

        if not isinstance(data, dict):
            raise MetadataFetchError("Unexpected metadata response shape")
        # v2 reports per-token failures in a 200 body
        meta = data.get("metadata")
        error = data.get("error") or (meta.get("error") if isinstance(meta, dict) else None)
        if error and not (data.get("title") or data.get("media")):
            raise MetadataFetchError(str(error))
        return data

    async def fetch(self, network: str, contract_address: str, token_id: int) -> AssetMetadata:
        logger.debug("Fetching metadata for %s/%s/%d", network, contract_address, token_id)
        data = await asyncio.to_thread(self._get, network, contract_address, token_id)
        try:
            return AssetMetadata.from_alchemy(data)
        except (AttributeError, KeyError, TypeError) as e:
            raise MetadataFetchError(f"Malformed metadata payload: {e}") from e
