# nft_ownership/chain/abi.py
"""
Minimal ERC-721 ABI: only the view the ownership check calls.
"""
from __future__ import annotations

from typing import Any, Dict, List

ERC721_OWNER_OF_ABI: List[Dict[str, Any]] = [
    {
        "type": "function",
        "name": "ownerOf",
        "inputs": [{"name": "_tokenId", "type": "uint256"}],
        "outputs": [{"name": "", "type": "address"}],
        "stateMutability": "view",
    },
]
