"""Metaplex Token Metadata records, Borsh layouts and instruction builders.

Only the two legacy instructions this tool submits are modelled:

- ``CreateMetadataAccountV3`` (discriminator 33)
- ``UpdateMetadataAccountV2`` (discriminator 15)

``UpdateMetadataAccountV2`` replaces the whole ``DataV2`` struct whenever its
``data`` argument is present, so partial updates are expressed with
:class:`MetadataUpdate` and merged onto the account's current data before the
instruction is built.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, replace
from enum import Enum
from typing import Any, TypeVar, Union

from construct import (
    Bytes,
    Const,
    ConstructError,
    ExprAdapter,
    Flag,
    GreedyBytes,
    If,
    Int8ul,
    Int16ul,
    Int32ul,
    Int64ul,
    Optional,
    PascalString,
    PrefixedArray,
    Struct,
    this,
)
from solders.instruction import AccountMeta, Instruction
from solders.pubkey import Pubkey

from token_metadata_cli.errors import InvalidArgument, MetadataDecodeError
from token_metadata_cli.solana.constants import (
    MAX_NAME_LENGTH,
    MAX_SELLER_FEE_BASIS_POINTS,
    MAX_SYMBOL_LENGTH,
    MAX_URI_LENGTH,
    SYSTEM_PROGRAM_ID,
    SYSVAR_RENT_ID,
    TOKEN_METADATA_PROGRAM_ID,
)

logger = logging.getLogger(__name__)

CREATE_METADATA_ACCOUNT_V3_DISCRIMINATOR = 33
UPDATE_METADATA_ACCOUNT_V2_DISCRIMINATOR = 15
METADATA_V1_KEY = 4


# ----------------------------------------------------------------------
# Borsh layouts
# ----------------------------------------------------------------------
def BorshOption(subcon: Any) -> ExprAdapter:
    """Borsh ``Option<T>``: a one byte tag followed by ``T`` when present."""
    return ExprAdapter(
        Struct("present" / Flag, "value" / If(this.present, subcon)),
        decoder=lambda obj, ctx: obj.value if obj.present else None,
        encoder=lambda obj, ctx: {"present": obj is not None, "value": obj},
    )


PubkeyLayout = ExprAdapter(
    Bytes(32),
    decoder=lambda obj, ctx: Pubkey.from_bytes(obj),
    encoder=lambda obj, ctx: bytes(obj),
)
BorshString = PascalString(Int32ul, "utf8")

CREATOR_LAYOUT = Struct("address" / PubkeyLayout, "verified" / Flag, "share" / Int8ul)
COLLECTION_LAYOUT = Struct("verified" / Flag, "key" / PubkeyLayout)
USES_LAYOUT = Struct("use_method" / Int8ul, "remaining" / Int64ul, "total" / Int64ul)
COLLECTION_DETAILS_LAYOUT = Struct("kind" / Int8ul, "size" / Int64ul)

DATA_LAYOUT = Struct(
    "name" / BorshString,
    "symbol" / BorshString,
    "uri" / BorshString,
    "seller_fee_basis_points" / Int16ul,
    "creators" / BorshOption(PrefixedArray(Int32ul, CREATOR_LAYOUT)),
)

DATA_V2_LAYOUT = Struct(
    "name" / BorshString,
    "symbol" / BorshString,
    "uri" / BorshString,
    "seller_fee_basis_points" / Int16ul,
    "creators" / BorshOption(PrefixedArray(Int32ul, CREATOR_LAYOUT)),
    "collection" / BorshOption(COLLECTION_LAYOUT),
    "uses" / BorshOption(USES_LAYOUT),
)

# Trailing fields were appended over successive program versions; older
# accounts may not carry them.
METADATA_ACCOUNT_LAYOUT = Struct(
    "key" / Int8ul,
    "update_authority" / PubkeyLayout,
    "mint" / PubkeyLayout,
    "data" / DATA_LAYOUT,
    "primary_sale_happened" / Flag,
    "is_mutable" / Flag,
    "edition_nonce" / Optional(BorshOption(Int8ul)),
    "token_standard" / Optional(BorshOption(Int8ul)),
    "collection" / Optional(BorshOption(COLLECTION_LAYOUT)),
    "uses" / Optional(BorshOption(USES_LAYOUT)),
    "remaining" / GreedyBytes,
)

CREATE_METADATA_ACCOUNT_V3_ARGS = Struct(
    "discriminator" / Const(CREATE_METADATA_ACCOUNT_V3_DISCRIMINATOR, Int8ul),
    "data" / DATA_V2_LAYOUT,
    "is_mutable" / Flag,
    "collection_details" / BorshOption(COLLECTION_DETAILS_LAYOUT),
)

UPDATE_METADATA_ACCOUNT_V2_ARGS = Struct(
    "discriminator" / Const(UPDATE_METADATA_ACCOUNT_V2_DISCRIMINATOR, Int8ul),
    "data" / BorshOption(DATA_V2_LAYOUT),
    "new_update_authority" / BorshOption(PubkeyLayout),
    "primary_sale_happened" / BorshOption(Flag),
    "is_mutable" / BorshOption(Flag),
)


# ----------------------------------------------------------------------
# Records
# ----------------------------------------------------------------------
@dataclass(frozen=True)
class Creator:
    address: Pubkey
    verified: bool
    share: int


@dataclass(frozen=True)
class Collection:
    verified: bool
    key: Pubkey


@dataclass(frozen=True)
class Uses:
    use_method: int
    remaining: int
    total: int


@dataclass(frozen=True)
class MetadataData:
    """The ``DataV2`` payload shared by both instructions."""

    name: str
    symbol: str
    uri: str = ""
    seller_fee_basis_points: int = 0
    creators: tuple[Creator, ...] | None = None
    collection: Collection | None = None
    uses: Uses | None = None

    def to_layout(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "symbol": self.symbol,
            "uri": self.uri,
            "seller_fee_basis_points": self.seller_fee_basis_points,
            "creators": (
                None
                if self.creators is None
                else [{"address": c.address, "verified": c.verified, "share": c.share} for c in self.creators]
            ),
            "collection": (
                None
                if self.collection is None
                else {"verified": self.collection.verified, "key": self.collection.key}
            ),
            "uses": (
                None
                if self.uses is None
                else {"use_method": self.uses.use_method, "remaining": self.uses.remaining, "total": self.uses.total}
            ),
        }


@dataclass(frozen=True)
class MetadataAccount:
    """Decoded ``Metadata`` account as stored on chain."""

    update_authority: Pubkey
    mint: Pubkey
    data: MetadataData
    primary_sale_happened: bool
    is_mutable: bool
    edition_nonce: int | None = None
    token_standard: int | None = None


def _strip_padding(value: str) -> str:
    return value.rstrip("\x00")


def decode_metadata_account(raw: bytes) -> MetadataAccount:
    """Decode raw ``Metadata`` account bytes."""
    if not raw or raw[0] != METADATA_V1_KEY:
        found = raw[0] if raw else None
        raise MetadataDecodeError(f"Account is not a metadata record (key={found}).")
    try:
        parsed = METADATA_ACCOUNT_LAYOUT.parse(raw)
    except (ConstructError, UnicodeDecodeError) as exc:
        raise MetadataDecodeError(f"Failed to deserialize metadata: {exc}") from exc

    creators = None
    if parsed.data.creators is not None:
        creators = tuple(Creator(address=c.address, verified=c.verified, share=c.share) for c in parsed.data.creators)
    collection = None
    if parsed.collection is not None:
        collection = Collection(verified=parsed.collection.verified, key=parsed.collection.key)
    uses = None
    if parsed.uses is not None:
        uses = Uses(use_method=parsed.uses.use_method, remaining=parsed.uses.remaining, total=parsed.uses.total)

    data = MetadataData(
        name=_strip_padding(parsed.data.name),
        symbol=_strip_padding(parsed.data.symbol),
        uri=_strip_padding(parsed.data.uri),
        seller_fee_basis_points=parsed.data.seller_fee_basis_points,
        creators=creators,
        collection=collection,
        uses=uses,
    )
    return MetadataAccount(
        update_authority=parsed.update_authority,
        mint=parsed.mint,
        data=data,
        primary_sale_happened=parsed.primary_sale_happened,
        is_mutable=parsed.is_mutable,
        edition_nonce=parsed.edition_nonce,
        token_standard=parsed.token_standard,
    )


# ----------------------------------------------------------------------
# Partial updates
# ----------------------------------------------------------------------
class Unchanged(Enum):
    """Marks a field the caller did not ask to change."""

    UNCHANGED = "unchanged"

    def __repr__(self) -> str:
        return "UNCHANGED"


UNCHANGED = Unchanged.UNCHANGED

T = TypeVar("T")
MaybeChanged = Union[T, Unchanged]

DATA_FIELDS = ("name", "symbol", "uri", "seller_fee_basis_points")


@dataclass(frozen=True)
class MetadataUpdate:
    """Per-field update request; ``UNCHANGED`` fields keep their on-chain value."""

    name: MaybeChanged[str] = UNCHANGED
    symbol: MaybeChanged[str] = UNCHANGED
    uri: MaybeChanged[str] = UNCHANGED
    seller_fee_basis_points: MaybeChanged[int] = UNCHANGED
    is_mutable: MaybeChanged[bool] = UNCHANGED

    @classmethod
    def from_options(cls, **values: Any) -> "MetadataUpdate":
        """Build an update where ``None`` means the option was not given."""
        return cls(**{key: UNCHANGED if value is None else value for key, value in values.items()})

    def changed_fields(self) -> list[str]:
        return [name for name in (*DATA_FIELDS, "is_mutable") if getattr(self, name) is not UNCHANGED]

    @property
    def is_empty(self) -> bool:
        return not self.changed_fields()

    @property
    def changes_data(self) -> bool:
        return any(getattr(self, name) is not UNCHANGED for name in DATA_FIELDS)

    def apply(self, existing: MetadataData) -> MetadataData:
        """Merge the set fields onto ``existing``; pass-through fields are kept."""
        changes = {name: getattr(self, name) for name in DATA_FIELDS if getattr(self, name) is not UNCHANGED}
        return replace(existing, **changes)

    def mutable_option(self) -> bool | None:
        return None if self.is_mutable is UNCHANGED else self.is_mutable


# ----------------------------------------------------------------------
# Validation
# ----------------------------------------------------------------------
def validate_seller_fee_basis_points(value: int) -> int:
    if value < 0 or value > MAX_SELLER_FEE_BASIS_POINTS:
        raise InvalidArgument(
            f"Seller fee basis points must be between 0 and {MAX_SELLER_FEE_BASIS_POINTS}, got {value}."
        )
    return value


def validate_text_field(label: str, value: str, limit: int) -> str:
    size = len(value.encode("utf-8"))
    if size > limit:
        raise InvalidArgument(f"{label} must be at most {limit} bytes, got {size}.")
    return value


def validate_data(data: MetadataData) -> MetadataData:
    validate_text_field("Name", data.name, MAX_NAME_LENGTH)
    validate_text_field("Symbol", data.symbol, MAX_SYMBOL_LENGTH)
    validate_text_field("URI", data.uri, MAX_URI_LENGTH)
    validate_seller_fee_basis_points(data.seller_fee_basis_points)
    return data


def validate_update(update: MetadataUpdate) -> MetadataUpdate:
    if update.name is not UNCHANGED:
        validate_text_field("Name", update.name, MAX_NAME_LENGTH)
    if update.symbol is not UNCHANGED:
        validate_text_field("Symbol", update.symbol, MAX_SYMBOL_LENGTH)
    if update.uri is not UNCHANGED:
        validate_text_field("URI", update.uri, MAX_URI_LENGTH)
    if update.seller_fee_basis_points is not UNCHANGED:
        validate_seller_fee_basis_points(update.seller_fee_basis_points)
    return update


# ----------------------------------------------------------------------
# Instruction builders
# ----------------------------------------------------------------------
def create_metadata_account_v3(
    *,
    metadata: Pubkey,
    mint: Pubkey,
    mint_authority: Pubkey,
    payer: Pubkey,
    update_authority: Pubkey,
    data: MetadataData,
    is_mutable: bool,
    update_authority_is_signer: bool = True,
    program_id: Pubkey = TOKEN_METADATA_PROGRAM_ID,
) -> Instruction:
    payload = CREATE_METADATA_ACCOUNT_V3_ARGS.build(
        {"data": data.to_layout(), "is_mutable": is_mutable, "collection_details": None}
    )
    accounts = [
        AccountMeta(metadata, is_signer=False, is_writable=True),
        AccountMeta(mint, is_signer=False, is_writable=False),
        AccountMeta(mint_authority, is_signer=True, is_writable=False),
        AccountMeta(payer, is_signer=True, is_writable=True),
        AccountMeta(update_authority, is_signer=update_authority_is_signer, is_writable=False),
        AccountMeta(SYSTEM_PROGRAM_ID, is_signer=False, is_writable=False),
        AccountMeta(SYSVAR_RENT_ID, is_signer=False, is_writable=False),
    ]
    logger.debug("Built CreateMetadataAccountV3 for metadata %s (%d bytes)", metadata, len(payload))
    return Instruction(program_id, payload, accounts)


def update_metadata_account_v2(
    *,
    metadata: Pubkey,
    update_authority: Pubkey,
    data: MetadataData | None = None,
    new_update_authority: Pubkey | None = None,
    primary_sale_happened: bool | None = None,
    is_mutable: bool | None = None,
    program_id: Pubkey = TOKEN_METADATA_PROGRAM_ID,
) -> Instruction:
    payload = UPDATE_METADATA_ACCOUNT_V2_ARGS.build(
        {
            "data": None if data is None else data.to_layout(),
            "new_update_authority": new_update_authority,
            "primary_sale_happened": primary_sale_happened,
            "is_mutable": is_mutable,
        }
    )
    accounts = [
        AccountMeta(metadata, is_signer=False, is_writable=True),
        AccountMeta(update_authority, is_signer=True, is_writable=False),
    ]
    logger.debug("Built UpdateMetadataAccountV2 for metadata %s (%d bytes)", metadata, len(payload))
    return Instruction(program_id, payload, accounts)


__all__ = [
    "Creator",
    "Collection",
    "Uses",
    "MetadataData",
    "MetadataAccount",
    "MetadataUpdate",
    "UNCHANGED",
    "Unchanged",
    "decode_metadata_account",
    "validate_data",
    "validate_update",
    "validate_seller_fee_basis_points",
    "create_metadata_account_v3",
    "update_metadata_account_v2",
    "METADATA_ACCOUNT_LAYOUT",
    "CREATE_METADATA_ACCOUNT_V3_ARGS",
    "UPDATE_METADATA_ACCOUNT_V2_ARGS",
]
