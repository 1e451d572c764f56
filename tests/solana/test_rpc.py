from __future__ import annotations

import base64
from typing import Any

import httpx
import pytest
from solders.hash import Hash
from solders.keypair import Keypair
from solders.message import Message
from solders.pubkey import Pubkey
from solders.system_program import TransferParams, transfer
from solders.transaction import Transaction

from token_metadata_cli.errors import RpcSubmissionError
from token_metadata_cli.solana.constants import TOKEN_METADATA_PROGRAM_ID
from token_metadata_cli.solana.rpc import SolanaRPCClient


def make_response(status_code: int, json_data: dict[str, Any]) -> httpx.Response:
    request = httpx.Request("POST", "https://rpc.example.com")
    return httpx.Response(status_code=status_code, json=json_data, request=request)


def test_get_latest_blockhash_success() -> None:
    blockhash = Hash.new_unique()
    seen: list[dict[str, Any]] = []

    def request(_url: str, *, json: dict[str, Any], timeout: float) -> httpx.Response:  # noqa: ARG001
        seen.append(json)
        return make_response(
            200,
            {"jsonrpc": "2.0", "result": {"context": {"slot": 1}, "value": {"blockhash": str(blockhash), "lastValidBlockHeight": 9}}, "id": json["id"]},
        )

    client = SolanaRPCClient(endpoint="https://rpc.example.com", _request=request)

    assert client.get_latest_blockhash() == blockhash
    assert seen[0]["method"] == "getLatestBlockhash"
    assert seen[0]["params"] == [{"commitment": "confirmed"}]


def test_get_account_info_decodes_base64() -> None:
    def request(_url: str, *, json: dict[str, Any], timeout: float) -> httpx.Response:  # noqa: ARG001
        value = {
            "data": [base64.b64encode(b"\x04abc").decode("ascii"), "base64"],
            "owner": str(TOKEN_METADATA_PROGRAM_ID),
            "lamports": 5_616_720,
            "executable": False,
            "rentEpoch": 0,
        }
        return make_response(200, {"jsonrpc": "2.0", "result": {"context": {"slot": 1}, "value": value}, "id": json["id"]})

    client = SolanaRPCClient(endpoint="https://rpc.example.com", _request=request)

    account = client.get_account_info(Keypair().pubkey())

    assert account is not None
    assert account.data == b"\x04abc"
    assert account.owner == TOKEN_METADATA_PROGRAM_ID
    assert account.lamports == 5_616_720


def test_get_account_info_missing_account_returns_none() -> None:
    def request(_url: str, *, json: dict[str, Any], timeout: float) -> httpx.Response:  # noqa: ARG001
        return make_response(200, {"jsonrpc": "2.0", "result": {"context": {"slot": 1}, "value": None}, "id": json["id"]})

    client = SolanaRPCClient(endpoint="https://rpc.example.com", _request=request)

    assert client.get_account_info(Keypair().pubkey()) is None


def test_send_transaction_encodes_base64() -> None:
    payer = Keypair()
    blockhash = Hash.new_unique()
    ix = transfer(TransferParams(from_pubkey=payer.pubkey(), to_pubkey=Pubkey.new_unique(), lamports=1))
    tx = Transaction([payer], Message([ix], payer.pubkey()), blockhash)
    captured: dict[str, Any] = {}

    def request(_url: str, *, json: dict[str, Any], timeout: float) -> httpx.Response:  # noqa: ARG001
        captured.update(json)
        return make_response(200, {"jsonrpc": "2.0", "result": str(tx.signatures[0]), "id": json["id"]})

    client = SolanaRPCClient(endpoint="https://rpc.example.com", _request=request)

    signature = client.send_transaction(tx)

    assert signature == str(tx.signatures[0])
    encoded, options = captured["params"]
    assert base64.b64decode(encoded) == bytes(tx)
    assert options == {"encoding": "base64", "preflightCommitment": "confirmed"}


def test_http_error_raises() -> None:
    def request(_url: str, *, json: dict[str, Any], timeout: float) -> httpx.Response:  # noqa: ARG001
        return make_response(500, {"error": {"message": "fail"}})

    client = SolanaRPCClient(endpoint="https://rpc.example.com", _request=request)

    with pytest.raises(RpcSubmissionError, match="RPC request failed"):
        client.get_latest_blockhash()


def test_rpc_error_message_and_logs_pass_through() -> None:
    message = "Transaction simulation failed: Error processing Instruction 0: custom program error: 0x0"

    def request(_url: str, *, json: dict[str, Any], timeout: float) -> httpx.Response:  # noqa: ARG001
        error = {"code": -32002, "message": message, "data": {"logs": ["Program log: Error: Already initialized"]}}
        return make_response(200, {"jsonrpc": "2.0", "error": error, "id": json["id"]})

    client = SolanaRPCClient(endpoint="https://rpc.example.com", _request=request)

    with pytest.raises(RpcSubmissionError) as excinfo:
        client.get_latest_blockhash()

    assert str(excinfo.value) == message
    assert excinfo.value.code == -32002
    assert excinfo.value.logs == ["Program log: Error: Already initialized"]


def test_missing_result_is_malformed() -> None:
    def request(_url: str, *, json: dict[str, Any], timeout: float) -> httpx.Response:  # noqa: ARG001
        return make_response(200, {"jsonrpc": "2.0", "id": json["id"]})

    client = SolanaRPCClient(endpoint="https://rpc.example.com", _request=request)

    with pytest.raises(RpcSubmissionError, match="missing result"):
        client.get_latest_blockhash()


def test_non_object_rpc_error_is_wrapped() -> None:
    def request(_url: str, *, json: dict[str, Any], timeout: float) -> httpx.Response:  # noqa: ARG001
        return make_response(200, {"jsonrpc": "2.0", "error": "boom", "id": json["id"]})

    client = SolanaRPCClient(endpoint="https://rpc.example.com", _request=request)

    with pytest.raises(RpcSubmissionError, match="boom") as excinfo:
        client.get_latest_blockhash()

    assert excinfo.value.code is None
    assert excinfo.value.logs == []
