"""Load Solana CLI keypair files."""

from __future__ import annotations

import json
import logging
from pathlib import Path

from cryptography.hazmat.primitives.asymmetric import ed25519
from cryptography.hazmat.primitives.serialization import Encoding, PublicFormat
from solders.keypair import Keypair

from token_metadata_cli.errors import InvalidKeypairFile

logger = logging.getLogger(__name__)

SECRET_KEY_LENGTH = 64


def expand_path(path: str | Path) -> Path:
    return Path(path).expanduser()


def parse_secret_key(raw: str) -> bytes:
    """Decode the JSON byte array written by ``solana-keygen``."""
    try:
        parsed = json.loads(raw)
    except json.JSONDecodeError as exc:
        raise InvalidKeypairFile(f"Keypair file is not valid JSON: {exc}") from exc

    if not isinstance(parsed, list):
        raise InvalidKeypairFile("Keypair file must contain a JSON array of bytes.")
    if not all(isinstance(item, int) and not isinstance(item, bool) and 0 <= item <= 255 for item in parsed):
        raise InvalidKeypairFile("Keypair file must contain only integers between 0 and 255.")
    if len(parsed) != SECRET_KEY_LENGTH:
        raise InvalidKeypairFile(f"Secret key must be {SECRET_KEY_LENGTH} bytes, got {len(parsed)}.")
    return bytes(parsed)


def keypair_from_secret(secret: bytes) -> Keypair:
    private_key = ed25519.Ed25519PrivateKey.from_private_bytes(secret[:32])
    derived_public = private_key.public_key().public_bytes(Encoding.Raw, PublicFormat.Raw)
    if derived_public != secret[32:]:
        raise InvalidKeypairFile("Public key in keypair file does not match its secret key.")
    try:
        return Keypair.from_bytes(secret)
    except ValueError as exc:
        raise InvalidKeypairFile(f"Invalid keypair bytes: {exc}") from exc


def load_keypair(path: str | Path) -> Keypair:
    """Read ``path`` and return the signing keypair it holds."""
    resolved = expand_path(path)
    try:
        raw = resolved.read_text()
    except (OSError, UnicodeDecodeError) as exc:
        raise InvalidKeypairFile(f"Failed to read keypair from '{resolved}': {exc}") from exc

    keypair = keypair_from_secret(parse_secret_key(raw))
    logger.debug("Loaded keypair %s from %s", keypair.pubkey(), resolved)
    return keypair


__all__ = ["load_keypair", "parse_secret_key", "keypair_from_secret", "expand_path", "SECRET_KEY_LENGTH"]
