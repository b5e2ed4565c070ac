# nft_ownership/main.py
from contextlib import asynccontextmanager

from fastapi import FastAPI

from .authority import router as authority_router
from .config import log_config
from .db import ensure_tables, get_session_factory


@asynccontextmanager
async def lifespan(app):
    log_config()
    db = get_session_factory()()
    try:
        ensure_tables(db)
    finally:
        db.close()
    yield


app = FastAPI(title="NFT Ownership Authority", version="0.1.0", lifespan=lifespan)
app.include_router(authority_router)


@app.get("/healthz")
def healthz():
    return {"ok": "true"}
