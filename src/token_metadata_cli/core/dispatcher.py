"""Turn parsed commands into signed Token Metadata transactions."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Callable

from solders.instruction import Instruction
from solders.keypair import Keypair
from solders.pubkey import Pubkey
from solders.transaction import Transaction

from token_metadata_cli.core.config import CliConfig
from token_metadata_cli.errors import InvalidArgument, MetadataNotFound
from token_metadata_cli.solana.constants import TOKEN_METADATA_PROGRAM_ID
from token_metadata_cli.solana.keypair import load_keypair
from token_metadata_cli.solana.metadata import (
    MetadataAccount,
    MetadataData,
    MetadataUpdate,
    create_metadata_account_v3,
    decode_metadata_account,
    update_metadata_account_v2,
    validate_data,
    validate_update,
)
from token_metadata_cli.solana.pda import find_metadata_address, parse_pubkey
from token_metadata_cli.solana.rpc import SolanaRPCClient

logger = logging.getLogger(__name__)


@dataclass
class CreateRequest:
    mint: str
    name: str
    symbol: str
    uri: str = ""
    seller_fee_basis_points: int = 0
    is_mutable: bool = True


@dataclass
class UpdateRequest:
    mint: str
    changes: MetadataUpdate


@dataclass
class SubmissionResult:
    """Outcome of a submitted transaction."""

    signature: str
    mint: Pubkey
    metadata_address: Pubkey
    bump: int
    data: MetadataData
    previous: MetadataData | None = None
    is_mutable: bool | None = None


class CommandDispatcher:
    """Builds, signs and submits ``create`` and ``update`` transactions."""

    def __init__(
        self,
        config: CliConfig,
        *,
        rpc_client: SolanaRPCClient | None = None,
        keypair_loader: Callable[[str], Keypair] = load_keypair,
    ) -> None:
        self.config = config
        self.rpc_client = rpc_client or SolanaRPCClient(
            endpoint=config.rpc_url,
            timeout=config.timeout,
            commitment=config.commitment,
        )
        self._keypair_loader = keypair_loader
        self._signer: Keypair | None = None

    @property
    def signer(self) -> Keypair:
        if self._signer is None:
            self._signer = self._keypair_loader(self.config.keypair_path)
        return self._signer

    # ------------------------------------------------------------------
    # Commands
    # ------------------------------------------------------------------
    def check_create(self, request: CreateRequest) -> tuple[Pubkey, MetadataData]:
        """Run the local checks for ``create`` without touching the keypair or network."""
        mint = parse_pubkey(request.mint)
        data = validate_data(
            MetadataData(
                name=request.name,
                symbol=request.symbol,
                uri=request.uri,
                seller_fee_basis_points=request.seller_fee_basis_points,
            )
        )
        return mint, data

    def check_update(self, request: UpdateRequest) -> tuple[Pubkey, MetadataUpdate]:
        """Run the local checks for ``update`` without touching the keypair or network."""
        mint = parse_pubkey(request.mint)
        changes = validate_update(request.changes)
        if changes.is_empty:
            raise InvalidArgument(
                "Nothing to update; pass at least one of --name, --symbol, --uri, "
                "--seller-fee-basis-points or --mutable."
            )
        return mint, changes

    def create(self, request: CreateRequest) -> SubmissionResult:
        mint, data = self.check_create(request)
        metadata_address, bump = find_metadata_address(mint)
        signer = self.signer.pubkey()
        logger.info("Creating metadata %s for mint %s", metadata_address, mint)

        instruction = create_metadata_account_v3(
            metadata=metadata_address,
            mint=mint,
            mint_authority=signer,
            payer=signer,
            update_authority=signer,
            data=data,
            is_mutable=request.is_mutable,
        )
        signature = self._submit(instruction)
        return SubmissionResult(
            signature=signature,
            mint=mint,
            metadata_address=metadata_address,
            bump=bump,
            data=data,
            is_mutable=request.is_mutable,
        )

    def update(self, request: UpdateRequest) -> SubmissionResult:
        mint, changes = self.check_update(request)
        metadata_address, bump = find_metadata_address(mint)
        existing = self.fetch_metadata(metadata_address)
        logger.info("Updating %s on metadata %s", ", ".join(changes.changed_fields()), metadata_address)
        if not existing.is_mutable:
            logger.warning("Metadata %s is immutable; the program will reject this update.", metadata_address)

        new_data = changes.apply(existing.data) if changes.changes_data else None
        instruction = update_metadata_account_v2(
            metadata=metadata_address,
            update_authority=self.signer.pubkey(),
            data=new_data,
            is_mutable=changes.mutable_option(),
        )
        signature = self._submit(instruction)
        return SubmissionResult(
            signature=signature,
            mint=mint,
            metadata_address=metadata_address,
            bump=bump,
            data=new_data if new_data is not None else existing.data,
            previous=existing.data,
            is_mutable=existing.is_mutable if changes.mutable_option() is None else changes.mutable_option(),
        )

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------
    def fetch_metadata(self, metadata_address: Pubkey) -> MetadataAccount:
        account = self.rpc_client.get_account_info(metadata_address)
        if account is None:
            raise MetadataNotFound(f"No metadata account exists at {metadata_address}. Does it exist?")
        if account.owner != TOKEN_METADATA_PROGRAM_ID:
            raise MetadataNotFound(
                f"Account {metadata_address} is owned by {account.owner}, not the Token Metadata program."
            )
        return decode_metadata_account(account.data)

    def _submit(self, instruction: Instruction) -> str:
        signer = self.signer
        blockhash = self.rpc_client.get_latest_blockhash()
        transaction = Transaction.new_signed_with_payer([instruction], signer.pubkey(), [signer], blockhash)
        return self.rpc_client.send_transaction(transaction)


__all__ = ["CommandDispatcher", "CreateRequest", "UpdateRequest", "SubmissionResult"]
