#!/usr/bin/env python3
import requests
from web3 import Web3

import config
from models import BlockMetadata, RpcError, UpstreamError


class SolanaRpc:
    """
    SolanaRpc handles all JSON-RPC traffic for the slot search:
      - Creating a Web3 HTTP provider with the API key header and timeouts.
      - Reading the current finalized slot.
      - Reading a slot's block time (None when the slot has no block).
      - Fetching block metadata for the resolved slot.
    """
    def __init__(
        self,
        rpc_url,
        api_key=None,
        connect_timeout=config.CONNECT_TIMEOUT,
        total_timeout=config.TOTAL_TIMEOUT,
        web3_instance=None,
    ):
        self.rpc_url = rpc_url
        self.api_key = api_key
        self.connect_timeout = connect_timeout
        self.total_timeout = total_timeout
        # The provider keeps a pooled requests session; reuse it across calls.
        self.web3 = web3_instance if web3_instance is not None else self.get_web3_instance()

    @classmethod
    def from_config(cls, search_config):
        return cls(
            search_config.endpoint,
            api_key=search_config.api_key,
            connect_timeout=search_config.connect_timeout,
            total_timeout=search_config.total_timeout,
        )

    def get_web3_instance(self):
        headers = {"Content-Type": "application/json"}
        if self.api_key:
            headers["x-api-key"] = self.api_key
        provider = Web3.HTTPProvider(
            self.rpc_url,
            request_kwargs={
                "headers": headers,
                "timeout": (self.connect_timeout, self.total_timeout),
            },
        )
        return Web3(provider)

    def make_request(self, method, params):
        """
        Send one JSON-RPC request and return its ``result``.

        Raises RpcError when the response carries an error object and
        UpstreamError for transport or decoding failures.
        """
        try:
            response = self.web3.provider.make_request(method, params)
        except requests.exceptions.RequestException as e:
            raise UpstreamError(f"{method} request to {self.rpc_url} failed: {e}") from e
        except ValueError as e:
            raise UpstreamError(f"{method} returned an undecodable response: {e}") from e

        error = response.get("error")
        if error:
            if isinstance(error, dict):
                raise RpcError(method, error.get("code"), error.get("message", ""))
            raise RpcError(method, None, str(error))
        return response.get("result")

    def get_current_slot(self, commitment="finalized") -> int:
        slot = self.make_request("getSlot", [{"commitment": commitment}])
        if slot is None:
            raise UpstreamError("getSlot returned no result")
        return int(slot)

    def get_block_time(self, slot: int) -> int | None:
        try:
            block_time = self.make_request("getBlockTime", [slot])
        except RpcError as e:
            if e.code in config.BLOCK_NOT_AVAILABLE_CODES:
                return None
            raise
        return None if block_time is None else int(block_time)

    def get_block_info(self, slot: int) -> BlockMetadata:
        block_data = self.make_request(
            "getBlock",
            [
                slot,
                {
                    "encoding": "json",
                    "maxSupportedTransactionVersion": 0,
                    "transactionDetails": "none",
                    "rewards": False,
                },
            ],
        )
        if not block_data:
            raise UpstreamError(f"No block available for slot {slot}")
        return BlockMetadata.from_rpc(block_data)
