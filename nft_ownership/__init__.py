"""
NFT ownership verification.

Client side: parse an OpenSea asset URL, fetch its metadata, and ask the
backend authority whether the connected wallet owns it.

Server side: the backend authority (see `main.py`) with:

- GET  /healthz
- POST /api/nfts
- GET  /api/addresses/{address}/verified
- POST /api/addresses/challenge
- POST /api/addresses/verify
"""
