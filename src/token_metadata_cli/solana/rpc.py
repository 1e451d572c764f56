"""Solana JSON-RPC helpers."""

from __future__ import annotations

import base64
import logging
from dataclasses import dataclass
from typing import Any, Callable

import httpx
from solders.hash import Hash
from solders.pubkey import Pubkey
from solders.transaction import Transaction

from token_metadata_cli.errors import RpcSubmissionError
from token_metadata_cli.solana.constants import DEFAULT_COMMITMENT

logger = logging.getLogger(__name__)


RequestFn = Callable[..., httpx.Response]


@dataclass
class AccountInfo:
    """Subset of ``getAccountInfo`` we rely on."""

    owner: Pubkey
    lamports: int
    data: bytes
    executable: bool = False


@dataclass
class SolanaRPCClient:
    """Thin wrapper around Solana's JSON-RPC interface."""

    endpoint: str
    timeout: float = 10.0
    commitment: str = DEFAULT_COMMITMENT
    _request: RequestFn | None = None

    def __post_init__(self) -> None:
        if self._request is None:
            self._request = httpx.post
        self._next_id = 1

    def get_latest_blockhash(self) -> Hash:
        result = self._call("getLatestBlockhash", [{"commitment": self.commitment}])
        try:
            blockhash = result["value"]["blockhash"]
        except (KeyError, TypeError) as exc:
            raise RpcSubmissionError("Malformed RPC response; missing blockhash") from exc
        logger.debug("Latest blockhash %s", blockhash)
        try:
            return Hash.from_string(blockhash)
        except ValueError as exc:
            raise RpcSubmissionError(f"RPC returned an invalid blockhash: {blockhash}") from exc

    def get_account_info(self, address: Pubkey) -> AccountInfo | None:
        """Return the account at ``address`` or ``None`` when it does not exist."""
        result = self._call(
            "getAccountInfo",
            [str(address), {"encoding": "base64", "commitment": self.commitment}],
        )
        try:
            value = result["value"]
        except (KeyError, TypeError) as exc:
            raise RpcSubmissionError("Malformed RPC response; missing account value") from exc
        if value is None:
            logger.debug("No account at %s", address)
            return None
        try:
            encoded, encoding = value["data"]
            if encoding != "base64":
                raise RpcSubmissionError(f"Unexpected account encoding '{encoding}'")
            return AccountInfo(
                owner=Pubkey.from_string(value["owner"]),
                lamports=int(value["lamports"]),
                data=base64.b64decode(encoded),
                executable=bool(value.get("executable", False)),
            )
        except (KeyError, TypeError, ValueError) as exc:
            raise RpcSubmissionError("Malformed RPC response; unable to decode account") from exc

    def send_transaction(self, transaction: Transaction) -> str:
        """Submit a signed transaction and return its signature.

        The node simulates the transaction first, so on-chain rejections
        surface here as JSON-RPC errors.
        """
        encoded = base64.b64encode(bytes(transaction)).decode("ascii")
        result = self._call(
            "sendTransaction",
            [encoded, {"encoding": "base64", "preflightCommitment": self.commitment}],
        )
        if not isinstance(result, str):
            raise RpcSubmissionError("Malformed RPC response; missing transaction signature")
        logger.debug("Submitted transaction %s", result)
        return result

    def _call(self, method: str, params: list[Any]) -> Any:
        payload = {"jsonrpc": "2.0", "id": self._next_id, "method": method, "params": params}
        self._next_id += 1
        logger.debug("RPC %s -> %s", method, self.endpoint)
        try:
            response = self._request(self.endpoint, json=payload, timeout=self.timeout)  # type: ignore[misc]
            response.raise_for_status()
        except httpx.HTTPError as exc:
            raise RpcSubmissionError(f"RPC request failed: {exc}") from exc

        try:
            data = response.json()
        except ValueError as exc:  # pragma: no cover - unexpected for compliant RPC
            raise RpcSubmissionError("Invalid JSON in RPC response") from exc

        if "error" in data:
            error = data["error"] or {}
            if not isinstance(error, dict):
                raise RpcSubmissionError(str(error))
            message = error.get("message", "Unknown RPC error")
            details = error.get("data") if isinstance(error.get("data"), dict) else {}
            logs = details.get("logs") or []
            raise RpcSubmissionError(message, code=error.get("code"), logs=logs)

        if "result" not in data:
            raise RpcSubmissionError(f"Malformed RPC response for {method}; missing result")
        return data["result"]


__all__ = ["SolanaRPCClient", "AccountInfo", "RequestFn"]
