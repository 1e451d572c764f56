"""Error taxonomy for token metadata commands."""

from __future__ import annotations


class TokenMetadataError(RuntimeError):
    """Base class for every failure surfaced to the CLI."""


class InvalidKeypairFile(TokenMetadataError):
    """Raised when key material cannot be read or is malformed."""


class InvalidArgument(TokenMetadataError):
    """Raised when command input fails local validation."""


class RpcSubmissionError(TokenMetadataError):
    """Raised when the RPC endpoint or the chain rejects a request."""

    def __init__(self, message: str, *, code: int | None = None, logs: list[str] | None = None) -> None:
        super().__init__(message)
        self.code = code
        self.logs = list(logs or [])


class MetadataNotFound(TokenMetadataError):
    """Raised when the derived metadata account does not exist."""


class MetadataDecodeError(MetadataNotFound):
    """Raised when account data is not a Metaplex metadata record."""


__all__ = [
    "TokenMetadataError",
    "InvalidKeypairFile",
    "InvalidArgument",
    "RpcSubmissionError",
    "MetadataNotFound",
    "MetadataDecodeError",
]
