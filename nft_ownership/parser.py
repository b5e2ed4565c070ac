# nft_ownership/parser.py
from __future__ import annotations

import re
from typing import Optional

from .models import AssetReference

_ASSET_URL_REGEX = re.compile(
    r"https://(testnets\.)?opensea\.io/assets/(\w+)/(\w+)/(\d+)",
    re.ASCII,
)


def parse_asset_url(raw: str) -> Optional[AssetReference]:
    """
    Extract an asset reference from an OpenSea asset URL.

    The pattern is searched anywhere in `raw`, so a pasted URL with a
    trailing query string or surrounding whitespace still matches.
    Returns None when nothing matches.
    """
    if not raw:
        return None
    m = _ASSET_URL_REGEX.search(raw)
    if not m:
        return None
    _, network, contract_address, token_id = m.groups()
    return AssetReference(
        network=network,
        contract_address=contract_address,
        token_id=int(token_id),
    )
