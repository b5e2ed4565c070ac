"""
Backend authority endpoints against a throwaway SQLite database.
Chain reads are patched; signatures are real eth-account signatures.
"""
import pytest
from fastapi.testclient import TestClient

from conftest import ADDRESS_A, ADDRESS_B, KEY_A, KEY_B
from nft_ownership import db
from nft_ownership.chain.ownership import UnknownNetworkError
from nft_ownership.main import app
from nft_ownership.wallet import LocalWallet


@pytest.fixture
def client(tmp_path):
    db.init_engine(f"sqlite:///{tmp_path / 'authority.db'}")
    with TestClient(app) as c:
        yield c


@pytest.fixture
def owners(monkeypatch):
    table = {}

    def fake_get_owner(network, contract_address, token_id):
        key = (network, contract_address.lower(), token_id)
        if key not in table:
            raise RuntimeError("execution reverted: nonexistent token")
        owner = table[key]
        if isinstance(owner, Exception):
            raise owner
        return owner

    monkeypatch.setattr("nft_ownership.authority.get_owner", fake_get_owner)
    return table


def _claim(owner=ADDRESS_A, token_id=42, network="ethereum"):
    return {"contract_address": "0xABC123", "network": network, "token_id": token_id, "owner": owner}


def test_healthz(client):
    r = client.get("/healthz")
    assert r.status_code == 200
    assert r.json()["ok"] == "true"


def test_set_nfts_valid_owner(client, owners):
    owners[("ethereum", "0xabc123", 42)] = ADDRESS_A
    r = client.post("/api/nfts", json={"nfts": [_claim(owner=ADDRESS_A.upper().replace("0X", "0x"))]})
    assert r.status_code == 200
    assert r.json() == {"valid": True}


def test_set_nfts_wrong_owner(client, owners):
    owners[("ethereum", "0xabc123", 42)] = ADDRESS_B
    r = client.post("/api/nfts", json={"nfts": [_claim()]})
    assert r.status_code == 200
    assert r.json() == {"valid": False}


def test_set_nfts_all_must_be_valid(client, owners):
    owners[("ethereum", "0xabc123", 1)] = ADDRESS_A
    owners[("ethereum", "0xabc123", 2)] = ADDRESS_B
    r = client.post("/api/nfts", json={"nfts": [_claim(token_id=1), _claim(token_id=2)]})
    assert r.json() == {"valid": False}


def test_set_nfts_records_claims(client, owners):
    from sqlalchemy import text

    owners[("ethereum", "0xabc123", 42)] = ADDRESS_A
    client.post("/api/nfts", json={"nfts": [_claim()]}, headers={"X-Principal": "alice"})
    owners[("ethereum", "0xabc123", 42)] = ADDRESS_B
    client.post("/api/nfts", json={"nfts": [_claim()]}, headers={"X-Principal": "alice"})

    with db.get_session_factory()() as s:
        rows = s.execute(text(
            "SELECT principal, contract_address, token_id, owner, valid FROM nft_claim"
        )).fetchall()
    assert len(rows) == 1
    principal, contract, token_id, owner, valid = rows[0]
    assert (principal, contract, token_id, owner) == ("alice", "0xabc123", "42", ADDRESS_A)
    assert not valid


def test_set_nfts_empty_list(client, owners):
    r = client.post("/api/nfts", json={"nfts": []})
    assert r.status_code == 400


def test_set_nfts_empty_owner(client, owners):
    owners[("ethereum", "0xabc123", 42)] = ADDRESS_A
    r = client.post("/api/nfts", json={"nfts": [_claim(owner="")]})
    assert r.status_code == 400


def test_set_nfts_negative_token_id(client, owners):
    r = client.post("/api/nfts", json={"nfts": [_claim(token_id=-1)]})
    assert r.status_code == 422


def test_set_nfts_chain_failure(client, owners):
    r = client.post("/api/nfts", json={"nfts": [_claim(token_id=999)]})
    assert r.status_code == 502


def test_set_nfts_unknown_network(client, owners):
    owners[("nowhere", "0xabc123", 42)] = UnknownNetworkError("No RPC endpoint configured for network 'nowhere'")
    r = client.post("/api/nfts", json={"nfts": [_claim(network="nowhere")]})
    assert r.status_code == 400


def _challenge(client, address, principal="anonymous"):
    r = client.post(
        "/api/addresses/challenge", json={"address": address}, headers={"X-Principal": principal}
    )
    assert r.status_code == 200
    return r.json()["message"]


def _signed(key, message):
    wallet = LocalWallet(key)
    wallet.connect()
    return wallet.sign_message(message)


def test_address_challenge_roundtrip(client):
    assert client.get(f"/api/addresses/{ADDRESS_A}/verified").json() == {"verified": False}

    message = _challenge(client, ADDRESS_A)
    assert ADDRESS_A in message
    r = client.post("/api/addresses/verify", json={
        "address": ADDRESS_A, "message": message, "signature": _signed(KEY_A, message),
    })
    assert r.json() == {"verified": True}
    assert client.get(f"/api/addresses/{ADDRESS_A}/verified").json() == {"verified": True}

    # challenge is single use
    r = client.post("/api/addresses/verify", json={
        "address": ADDRESS_A, "message": message, "signature": _signed(KEY_A, message),
    })
    assert r.status_code == 404


def test_signature_from_other_key_is_rejected(client):
    message = _challenge(client, ADDRESS_A)
    r = client.post("/api/addresses/verify", json={
        "address": ADDRESS_A, "message": message, "signature": _signed(KEY_B, message),
    })
    assert r.json() == {"verified": False}
    assert client.get(f"/api/addresses/{ADDRESS_A}/verified").json() == {"verified": False}


def test_garbage_signature_is_rejected(client):
    message = _challenge(client, ADDRESS_A)
    r = client.post("/api/addresses/verify", json={
        "address": ADDRESS_A, "message": message, "signature": "0x1234",
    })
    assert r.json() == {"verified": False}


def test_verify_requires_matching_challenge(client):
    _challenge(client, ADDRESS_A)
    r = client.post("/api/addresses/verify", json={
        "address": ADDRESS_A, "message": "something else", "signature": _signed(KEY_A, "something else"),
    })
    assert r.status_code == 404


def test_expired_challenge(client, monkeypatch):
    monkeypatch.setattr("nft_ownership.authority.CHALLENGE_TTL", -1)
    message = _challenge(client, ADDRESS_A)
    r = client.post("/api/addresses/verify", json={
        "address": ADDRESS_A, "message": message, "signature": _signed(KEY_A, message),
    })
    assert r.status_code == 404


def test_verification_is_scoped_to_principal(client):
    message = _challenge(client, ADDRESS_A, principal="alice")
    client.post(
        "/api/addresses/verify",
        json={"address": ADDRESS_A, "message": message, "signature": _signed(KEY_A, message)},
        headers={"X-Principal": "alice"},
    )
    assert client.get(
        f"/api/addresses/{ADDRESS_A}/verified", headers={"X-Principal": "alice"}
    ).json() == {"verified": True}
    assert client.get(
        f"/api/addresses/{ADDRESS_A}/verified", headers={"X-Principal": "bob"}
    ).json() == {"verified": False}


def test_challenge_rejects_malformed_address(client):
    r = client.post("/api/addresses/challenge", json={"address": "not-an-address"})
    assert r.status_code == 422
