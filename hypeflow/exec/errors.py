from dataclasses import dataclass
from enum import Enum
from typing import Optional

import requests
from eth_abi.exceptions import EncodingError
from web3.exceptions import (
    ABIFunctionNotFound,
    BadFunctionCallOutput,
    InvalidAddress,
    TimeExhausted,
    Web3ValidationError,
)


class ErrorKind(str, Enum):
    INSUFFICIENT_FUNDS = "insufficient_funds"
    UNAVAILABLE = "unavailable"
    SERIALIZATION = "serialization"
    NOT_FOUND = "not_found"
    # ledger refused the trade for the current investment state
    REJECTED = "rejected"
    UNKNOWN = "unknown"


# Nodes that only report text; checked after the typed classes.
_NOT_FOUND_HINTS = ("doesn't exist", "does not exist", "module not found", "no code at")
_SERIALIZATION_HINTS = ("bcs", "serializ", "encod", "malformed", "invalid amount")


def classify_error(exc: BaseException) -> ErrorKind:
    if isinstance(exc, (BadFunctionCallOutput, ABIFunctionNotFound)):
        return ErrorKind.NOT_FOUND
    if isinstance(exc, (EncodingError, Web3ValidationError, InvalidAddress)):
        return ErrorKind.SERIALIZATION
    if isinstance(
        exc,
        (requests.exceptions.RequestException, TimeExhausted, ConnectionError, TimeoutError),
    ):
        return ErrorKind.UNAVAILABLE

    msg = str(exc).lower()
    if any(h in msg for h in _NOT_FOUND_HINTS):
        return ErrorKind.NOT_FOUND
    if any(h in msg for h in _SERIALIZATION_HINTS):
        return ErrorKind.SERIALIZATION
    return ErrorKind.UNKNOWN


@dataclass
class SwapResult:
    ok: bool
    tx_ref: Optional[str] = None
    kind: Optional[ErrorKind] = None
    error: str = ""

    @classmethod
    def success(cls, tx_ref: str) -> "SwapResult":
        return cls(ok=True, tx_ref=tx_ref)

    @classmethod
    def failure(cls, kind: ErrorKind, error: str = "") -> "SwapResult":
        return cls(ok=False, kind=kind, error=error)

    @classmethod
    def from_exception(cls, exc: BaseException) -> "SwapResult":
        return cls(ok=False, kind=classify_error(exc), error=str(exc))


class CollaboratorUnavailable(RuntimeError):
    """Holdings or price could not be read this cycle."""
