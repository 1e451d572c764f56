"""Solana-focused utilities for token metadata commands."""

from .keypair import load_keypair
from .pda import find_metadata_address, parse_pubkey
from .rpc import AccountInfo, SolanaRPCClient

__all__ = ["load_keypair", "find_metadata_address", "parse_pubkey", "SolanaRPCClient", "AccountInfo"]
