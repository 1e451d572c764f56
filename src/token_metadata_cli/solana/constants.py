"""Well-known program IDs and Metaplex protocol limits."""

from __future__ import annotations

from solders.pubkey import Pubkey

TOKEN_METADATA_PROGRAM_ID = Pubkey.from_string("metaqbxxUerdq28cj1RbAWkYQm3ybzjb6a8bt518x1s")
SYSTEM_PROGRAM_ID = Pubkey.from_string("11111111111111111111111111111111")
SYSVAR_RENT_ID = Pubkey.from_string("SysvarRent111111111111111111111111111111111")

METADATA_SEED = b"metadata"

MAX_NAME_LENGTH = 32
MAX_SYMBOL_LENGTH = 10
MAX_URI_LENGTH = 200
MAX_SELLER_FEE_BASIS_POINTS = 10_000

DEFAULT_RPC_URL = "https://api.devnet.solana.com"
DEFAULT_KEYPAIR_PATH = "~/.config/solana/id.json"
DEFAULT_COMMITMENT = "confirmed"
