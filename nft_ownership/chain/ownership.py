# nft_ownership/chain/ownership.py
"""
Read-only ownership lookups via ERC-721 ownerOf().
One Web3 client per network, created on first use.
"""

import logging
from typing import Dict

from web3 import Web3

from ..config import rpc_url_for
from .abi import ERC721_OWNER_OF_ABI

logger = logging.getLogger(__name__)

_clients: Dict[str, Web3] = {}


class UnknownNetworkError(ValueError):
    pass


def _get_w3(network):
    w3 = _clients.get(network)
    if w3 is None:
        rpc_url = rpc_url_for(network)
        if not rpc_url:
            raise UnknownNetworkError(f"No RPC endpoint configured for network '{network}'")
        w3 = Web3(Web3.HTTPProvider(rpc_url))
        _clients[network] = w3
    return w3


def get_owner(network, contract_address, token_id):
    """Returns the lowercase owner address of `token_id`. Raises on RPC/contract errors."""
    w3 = _get_w3(network)
    contract = w3.eth.contract(
        address=Web3.to_checksum_address(contract_address),
        abi=ERC721_OWNER_OF_ABI,
    )
    owner = contract.functions.ownerOf(token_id).call()
    logger.debug("ownerOf(%s/%s/%d) = %s", network, contract_address, token_id, owner)
    return owner.lower()
