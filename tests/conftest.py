from __future__ import annotations

import base64
from typing import Any

import httpx
import pytest
from solders.hash import Hash
from solders.keypair import Keypair
from solders.pubkey import Pubkey
from solders.transaction import Transaction

from token_metadata_cli.solana.constants import TOKEN_METADATA_PROGRAM_ID
from token_metadata_cli.solana.metadata import METADATA_ACCOUNT_LAYOUT
from token_metadata_cli.solana.rpc import SolanaRPCClient


class FakeSolana:
    """In-memory JSON-RPC endpoint backing a real SolanaRPCClient."""

    def __init__(self) -> None:
        self.accounts: dict[str, tuple[Pubkey, bytes]] = {}
        self.blockhash = Hash.new_unique()
        self.calls: list[dict[str, Any]] = []
        self.sent: list[Transaction] = []
        self.send_error: dict[str, Any] | None = None

    def put_metadata(self, address: Pubkey, *, update_authority: Pubkey, mint: Pubkey, **data: Any) -> None:
        fields = {
            "name": "My Token".ljust(32, "\x00"),
            "symbol": "MTK".ljust(10, "\x00"),
            "uri": "https://example.com/mtk.json".ljust(200, "\x00"),
            "seller_fee_basis_points": 250,
            "creators": None,
        }
        fields.update(data)
        is_mutable = fields.pop("is_mutable", True)
        collection = fields.pop("collection", None)
        raw = METADATA_ACCOUNT_LAYOUT.build(
            {
                "key": 4,
                "update_authority": update_authority,
                "mint": mint,
                "data": fields,
                "primary_sale_happened": False,
                "is_mutable": is_mutable,
                "edition_nonce": 255,
                "token_standard": 2,
                "collection": collection,
                "uses": None,
                "remaining": b"\x00" * 32,
            }
        )
        self.accounts[str(address)] = (TOKEN_METADATA_PROGRAM_ID, raw)

    def methods(self) -> list[str]:
        return [call["method"] for call in self.calls]

    def __call__(self, _url: str, *, json: dict[str, Any], timeout: float) -> httpx.Response:  # noqa: ARG002
        self.calls.append(json)
        method = json["method"]
        if method == "getLatestBlockhash":
            return self._ok(json, {"context": {"slot": 1}, "value": {"blockhash": str(self.blockhash), "lastValidBlockHeight": 100}})
        if method == "getAccountInfo":
            stored = self.accounts.get(json["params"][0])
            if stored is None:
                return self._ok(json, {"context": {"slot": 1}, "value": None})
            owner, raw = stored
            value = {
                "data": [base64.b64encode(raw).decode("ascii"), "base64"],
                "owner": str(owner),
                "lamports": 5_616_720,
                "executable": False,
                "rentEpoch": 0,
            }
            return self._ok(json, {"context": {"slot": 1}, "value": value})
        if method == "sendTransaction":
            if self.send_error is not None:
                return self._response({"jsonrpc": "2.0", "error": self.send_error, "id": json["id"]})
            tx = Transaction.from_bytes(base64.b64decode(json["params"][0]))
            self.sent.append(tx)
            return self._ok(json, str(tx.signatures[0]))
        return self._response({"jsonrpc": "2.0", "error": {"code": -32601, "message": "Method not found"}, "id": json["id"]})

    def _ok(self, request: dict[str, Any], result: Any) -> httpx.Response:
        return self._response({"jsonrpc": "2.0", "result": result, "id": request["id"]})

    @staticmethod
    def _response(payload: dict[str, Any]) -> httpx.Response:
        return httpx.Response(200, json=payload, request=httpx.Request("POST", "https://rpc.example.com"))


@pytest.fixture
def fake_solana() -> FakeSolana:
    return FakeSolana()


@pytest.fixture
def rpc_client(fake_solana: FakeSolana) -> SolanaRPCClient:
    return SolanaRPCClient(endpoint="https://rpc.example.com", _request=fake_solana)


@pytest.fixture
def signer() -> Keypair:
    return Keypair.from_seed(bytes([42] * 32))
