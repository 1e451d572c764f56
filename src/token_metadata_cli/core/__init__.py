"""Core services for token metadata commands."""

from .config import CliConfig, ConfigurationError, load_config
from .dispatcher import CommandDispatcher, CreateRequest, SubmissionResult, UpdateRequest
from token_metadata_cli.errors import (
    InvalidArgument,
    InvalidKeypairFile,
    MetadataDecodeError,
    MetadataNotFound,
    RpcSubmissionError,
    TokenMetadataError,
)

__all__ = [
    "CliConfig",
    "ConfigurationError",
    "load_config",
    "CommandDispatcher",
    "CreateRequest",
    "UpdateRequest",
    "SubmissionResult",
    "TokenMetadataError",
    "InvalidKeypairFile",
    "InvalidArgument",
    "RpcSubmissionError",
    "MetadataNotFound",
    "MetadataDecodeError",
]
