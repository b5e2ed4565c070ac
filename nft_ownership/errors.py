# nft_ownership/errors.py
"""
Error taxonomy and the error-reporting side channel.

Parse absence is not an error (the parser returns None). Everything here is
recoverable and scoped to the current generation.
"""
from __future__ import annotations

import logging
from typing import Callable, Optional

logger = logging.getLogger(__name__)

ErrorReporter = Callable[[BaseException, str], None]


class NftOwnershipError(Exception):
    pass


class MetadataFetchError(NftOwnershipError):
    """The metadata indexer could not resolve an asset."""


class BackendError(NftOwnershipError):
    """Transport or validation failure talking to the backend authority."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


class AddressVerificationError(BackendError):
    """The signature challenge for a wallet address was not accepted."""


class WalletError(NftOwnershipError):
    pass


def handle_error(err: BaseException, message: str) -> None:
    logger.error("%s %s", message, err)
