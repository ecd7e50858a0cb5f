from unittest.mock import MagicMock

import pytest
import requests

from config import SearchConfig
from models import BlockMetadata, RpcError, UpstreamError
from slot_rpc import SolanaRpc

RPC_URL = "https://rpc.example.invalid"


def make_rpc(response=None, side_effect=None):
    web3 = MagicMock()
    web3.provider.make_request.return_value = response
    web3.provider.make_request.side_effect = side_effect
    return SolanaRpc(RPC_URL, api_key="test-key", web3_instance=web3)


def rpc_error(code, message):
    return {"jsonrpc": "2.0", "id": 1, "error": {"code": code, "message": message}}


def test_provider_carries_api_key_header_and_timeouts():
    rpc = SolanaRpc(RPC_URL, api_key="test-key", connect_timeout=3, total_timeout=7)

    request_kwargs = dict(rpc.web3.provider.get_request_kwargs())
    assert rpc.web3.provider.endpoint_uri == RPC_URL
    assert request_kwargs["headers"]["x-api-key"] == "test-key"
    assert request_kwargs["headers"]["Content-Type"] == "application/json"
    assert request_kwargs["timeout"] == (3, 7)


def test_from_config_uses_endpoint_and_key():
    rpc = SolanaRpc.from_config(SearchConfig(endpoint=RPC_URL, api_key="abc", total_timeout=4))

    assert rpc.rpc_url == RPC_URL
    assert rpc.api_key == "abc"
    assert rpc.total_timeout == 4


def test_current_slot_requests_finalized_commitment():
    rpc = make_rpc({"jsonrpc": "2.0", "id": 1, "result": 345678901})

    assert rpc.get_current_slot() == 345678901
    rpc.web3.provider.make_request.assert_called_once_with("getSlot", [{"commitment": "finalized"}])


def test_current_slot_error_is_upstream():
    rpc = make_rpc(rpc_error(-32603, "Internal error"))

    with pytest.raises(UpstreamError):
        rpc.get_current_slot()


def test_block_time_returns_timestamp():
    rpc = make_rpc({"jsonrpc": "2.0", "id": 1, "result": 1750921805})

    assert rpc.get_block_time(345000000) == 1750921805
    rpc.web3.provider.make_request.assert_called_once_with("getBlockTime", [345000000])


@pytest.mark.parametrize("code", [-32004, -32007, -32009])
def test_block_not_available_is_absent_not_error(code):
    rpc = make_rpc(rpc_error(code, "Slot 345000000 was skipped, or missing in long-term storage"))

    assert rpc.get_block_time(345000000) is None


def test_null_block_time_is_absent():
    rpc = make_rpc({"jsonrpc": "2.0", "id": 1, "result": None})

    assert rpc.get_block_time(12) is None


def test_other_rpc_errors_are_raised_with_code():
    rpc = make_rpc(rpc_error(-32005, "Node is behind"))

    with pytest.raises(RpcError) as excinfo:
        rpc.get_block_time(12)
    assert excinfo.value.code == -32005
    assert excinfo.value.method == "getBlockTime"


def test_transport_failure_is_upstream():
    rpc = make_rpc(side_effect=requests.exceptions.ConnectTimeout("timed out"))

    with pytest.raises(UpstreamError):
        rpc.get_block_time(12)


def test_undecodable_response_is_upstream():
    rpc = make_rpc(side_effect=ValueError("Expecting value: line 1 column 1"))

    with pytest.raises(UpstreamError):
        rpc.get_block_time(12)


def test_block_info_is_mapped_to_metadata():
    rpc = make_rpc({
        "jsonrpc": "2.0",
        "id": 1,
        "result": {
            "blockhash": "9n2k5a1Hx7pQ",
            "parentSlot": 344999999,
            "blockTime": 1750921805,
            "blockHeight": 323000000,
            "previousBlockhash": "4fDq",
        },
    })

    block_info = rpc.get_block_info(345000000)

    assert block_info == BlockMetadata("9n2k5a1Hx7pQ", 344999999, 1750921805, 323000000)
    method, params = rpc.web3.provider.make_request.call_args.args
    assert method == "getBlock"
    assert params[0] == 345000000
    assert params[1]["transactionDetails"] == "none"
    assert params[1]["rewards"] is False


def test_block_info_without_optional_fields():
    rpc = make_rpc({"jsonrpc": "2.0", "id": 1, "result": {"blockhash": "abc", "parentSlot": 1}})

    block_info = rpc.get_block_info(2)

    assert block_info.block_time is None
    assert block_info.block_height is None


def test_missing_block_info_is_upstream():
    rpc = make_rpc({"jsonrpc": "2.0", "id": 1, "result": None})

    with pytest.raises(UpstreamError):
        rpc.get_block_info(2)
