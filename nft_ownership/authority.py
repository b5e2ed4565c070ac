# nft_ownership/authority.py
"""
Backend authority endpoints.
Pattern: validate -> read chain / check signature -> record in DB -> return verdict.
"""

import logging
import time
from typing import List

from fastapi import APIRouter, Depends, Header, HTTPException
from pydantic import BaseModel, Field
from sqlalchemy import text as sql_text
from sqlalchemy.orm import Session

from .chain.ownership import UnknownNetworkError, get_owner
from .chain.signatures import build_challenge, verify_ecdsa
from .config import CHALLENGE_TTL
from .db import get_db
from .models import OwnershipClaim

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api", tags=["authority"])

ADDRESS_PATTERN = "^0x[0-9a-fA-F]{40}$"


class SetNftsRequest(BaseModel):
    nfts: List[OwnershipClaim]


class SetNftsResponse(BaseModel):
    valid: bool


class ChallengeRequest(BaseModel):
    address: str = Field(..., pattern=ADDRESS_PATTERN)


class ChallengeResponse(BaseModel):
    message: str


class VerifyAddressRequest(BaseModel):
    address: str = Field(..., pattern=ADDRESS_PATTERN)
    message: str = Field(..., min_length=1)
    signature: str = Field(..., min_length=1)


class VerifiedResponse(BaseModel):
    verified: bool


def get_principal(x_principal: str = Header(default="anonymous")) -> str:
    return x_principal or "anonymous"


def _record_claim(db, principal, claim, valid):
    db.execute(sql_text(
        "INSERT INTO nft_claim (principal, network, contract_address, token_id, owner, valid) "
        "VALUES (:p, :n, :c, :t, :o, :v) "
        "ON CONFLICT (principal, network, contract_address, token_id) "
        "DO UPDATE SET owner = excluded.owner, valid = excluded.valid"
    ), {
        "p": principal,
        "n": claim.network,
        "c": claim.contract_address.lower(),
        "t": str(claim.token_id),
        "o": claim.owner.lower(),
        "v": valid,
    })


@router.post("/nfts", response_model=SetNftsResponse)
def set_nfts(
    body: SetNftsRequest,
    principal: str = Depends(get_principal),
    db: Session = Depends(get_db),
):
    if not body.nfts:
        raise HTTPException(400, "At least one NFT is required")

    all_valid = True
    for claim in body.nfts:
        if not claim.owner:
            raise HTTPException(400, "Owner address is required")
        try:
            owner = get_owner(claim.network, claim.contract_address, claim.token_id)
        except UnknownNetworkError as e:
            raise HTTPException(400, str(e))
        except Exception as e:
            logger.warning(
                "ownerOf failed for %s/%s/%d: %s",
                claim.network, claim.contract_address, claim.token_id, e,
            )
            raise HTTPException(502, f"Failed to read owner on-chain: {e}")

        valid = owner == claim.owner.lower()
        _record_claim(db, principal, claim, valid)
        all_valid = all_valid and valid

    db.commit()
    logger.info("Recorded %d NFT claim(s) for %s: valid=%s", len(body.nfts), principal, all_valid)
    return SetNftsResponse(valid=all_valid)


@router.get("/addresses/{address}/verified", response_model=VerifiedResponse)
def address_verified(
    address: str,
    principal: str = Depends(get_principal),
    db: Session = Depends(get_db),
):
    row = db.execute(sql_text(
        "SELECT 1 FROM verified_address WHERE principal = :p AND address = :a"
    ), {"p": principal, "a": address.lower()}).fetchone()
    return VerifiedResponse(verified=row is not None)


@router.post("/addresses/challenge", response_model=ChallengeResponse)
def address_challenge(
    body: ChallengeRequest,
    principal: str = Depends(get_principal),
    db: Session = Depends(get_db),
):
    address = body.address.lower()
    message = build_challenge(principal, address)
    db.execute(sql_text(
        "INSERT INTO address_challenge (principal, address, message, expires_at) "
        "VALUES (:p, :a, :m, :e) "
        "ON CONFLICT (principal, address) "
        "DO UPDATE SET message = excluded.message, expires_at = excluded.expires_at"
    ), {"p": principal, "a": address, "m": message, "e": int(time.time()) + CHALLENGE_TTL})
    db.commit()
    return ChallengeResponse(message=message)


@router.post("/addresses/verify", response_model=VerifiedResponse)
def address_verify(
    body: VerifyAddressRequest,
    principal: str = Depends(get_principal),
    db: Session = Depends(get_db),
):
    address = body.address.lower()
    row = db.execute(sql_text(
        "SELECT message, expires_at FROM address_challenge "
        "WHERE principal = :p AND address = :a"
    ), {"p": principal, "a": address}).fetchone()

    if row is None or row[0] != body.message or int(row[1]) < int(time.time()):
        raise HTTPException(404, "No pending challenge for this address")

    if not verify_ecdsa(address, body.message, body.signature):
        logger.warning("Rejected signature for %s (principal %s)", address, principal)
        return VerifiedResponse(verified=False)

    db.execute(sql_text(
        "DELETE FROM address_challenge WHERE principal = :p AND address = :a"
    ), {"p": principal, "a": address})
    db.execute(sql_text(
        "INSERT INTO verified_address (principal, address, verified_at) VALUES (:p, :a, :t) "
        "ON CONFLICT (principal, address) DO UPDATE SET verified_at = excluded.verified_at"
    ), {"p": principal, "a": address, "t": int(time.time())})
    db.commit()
    logger.info("Verified address %s for principal %s", address, principal)
    return VerifiedResponse(verified=True)
