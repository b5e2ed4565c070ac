# nft_ownership/chain/signatures.py
"""
Wallet-address challenges: one-time messages signed with personal_sign
(EIP-191) and checked by recovering the signer.
"""
from __future__ import annotations

import logging
import secrets

from eth_account import Account
from eth_account.messages import encode_defunct

logger = logging.getLogger(__name__)


def build_challenge(principal: str, address: str) -> str:
    nonce = secrets.token_hex(16)
    return (
        "Verify wallet ownership\n"
        f"Principal: {principal}\n"
        f"Address: {address.lower()}\n"
        f"Nonce: {nonce}"
    )


def verify_ecdsa(eth_address: str, message: str, signature: str) -> bool:
    """True iff `signature` over `message` recovers to `eth_address`."""
    try:
        recovered = Account.recover_message(encode_defunct(text=message), signature=signature)
    except Exception as e:
        # eth_account raises assorted ValueError/BadSignature subclasses for junk input
        logger.info("Signature recovery failed for %s: %s", eth_address, e)
        return False
    return recovered.lower() == eth_address.lower()
