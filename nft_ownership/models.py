# nft_ownership/models.py
"""
Domain types for the ownership-verification pipeline.

`AssetReference`, `AssetMetadata` and the `FetchOutcome` variants are plain
frozen dataclasses: they are derived per input and compared structurally.
`OwnershipClaim` is a pydantic model because it crosses the wire to the
backend authority.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, Optional, Union

from pydantic import BaseModel, Field

# Tri-state validity: None = unknown, True = valid, False = invalid.
Validity = Optional[bool]


@dataclass(frozen=True)
class AssetReference:
    network: str
    contract_address: str
    token_id: int


@dataclass(frozen=True)
class AssetMetadata:
    title: Optional[str] = None
    description: Optional[str] = None
    media_url: Optional[str] = None

    @classmethod
    def from_alchemy(cls, data: Dict[str, Any]) -> "AssetMetadata":
        """Build from an Alchemy getNFTMetadata payload (v2 or v3 shape)."""
        title = data.get("title") or data.get("name") or None
        if title is not None and not isinstance(title, str):
            title = str(title)

        description = data.get("description") or None
        if isinstance(description, list):
            description = " ".join(str(d) for d in description) or None

        media_url = None
        media = data.get("media") or []
        if isinstance(media, list) and media and isinstance(media[0], dict):
            media_url = media[0].get("gateway") or media[0].get("raw") or None
        elif isinstance(media, list) and media and isinstance(media[0], str):
            media_url = media[0] or None
        elif isinstance(data.get("image"), dict):
            image = data["image"]
            media_url = image.get("cachedUrl") or image.get("originalUrl") or None

        return cls(title=title, description=description, media_url=media_url)


@dataclass(frozen=True)
class Metadata:
    metadata: AssetMetadata


@dataclass(frozen=True)
class FetchError:
    message: str


FetchOutcome = Union[Metadata, FetchError]


class OwnershipClaim(BaseModel):
    contract_address: str = Field(..., min_length=1)
    network: str = Field(..., min_length=1)
    token_id: int = Field(..., ge=0)
    owner: str

    @classmethod
    def for_reference(cls, reference: AssetReference, owner: str) -> "OwnershipClaim":
        return cls(
            contract_address=reference.contract_address,
            network=reference.network,
            token_id=reference.token_id,
            owner=owner,
        )
