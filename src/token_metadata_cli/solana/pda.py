"""Metadata account address derivation."""

from __future__ import annotations

from solders.pubkey import Pubkey

from token_metadata_cli.errors import InvalidArgument
from token_metadata_cli.solana.constants import METADATA_SEED, TOKEN_METADATA_PROGRAM_ID


def parse_pubkey(value: str, *, label: str = "mint") -> Pubkey:
    """Parse a base58 address, raising ``InvalidArgument`` on bad input."""
    text = value.strip()
    try:
        return Pubkey.from_string(text)
    except ValueError as exc:
        raise InvalidArgument(f"Invalid {label} address '{value}'.") from exc


def find_metadata_address(mint: Pubkey, program_id: Pubkey = TOKEN_METADATA_PROGRAM_ID) -> tuple[Pubkey, int]:
    """Return the metadata PDA and bump for ``mint``.

    Seeds are fixed by the Token Metadata program: ``["metadata", program_id, mint]``.
    """
    seeds = [METADATA_SEED, bytes(program_id), bytes(mint)]
    return Pubkey.find_program_address(seeds, program_id)


__all__ = ["find_metadata_address", "parse_pubkey"]
