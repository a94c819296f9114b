#!/usr/bin/env python3
import logging

import requests
from web3 import Web3
from web3.exceptions import Web3Exception

import config
from errors import ConnectivityError, NotFoundError, ProtocolError

logger = logging.getLogger(__name__)


def decode_quantity(value, field):
    """
    Decode a JSON-RPC quantity ("0x1a2b") into an int, keeping full precision.
    """
    if isinstance(value, bool):
        raise ProtocolError(f"{field}: expected hex quantity, got {value!r}")
    if isinstance(value, int):
        return value
    if not isinstance(value, str) or not value.startswith("0x"):
        raise ProtocolError(f"{field}: expected hex quantity, got {value!r}")
    try:
        return Web3.to_int(hexstr=value)
    except (TypeError, ValueError) as e:
        raise ProtocolError(f"{field}: cannot decode {value!r}") from e


class EvmSource:
    """
    EvmSource answers ledger queries for EVM chains over JSON-RPC:
      - eth_blockNumber for the head height.
      - eth_getBlockByNumber for the timestamp of a given height.
    Requests go straight through the provider so that hex quantities and
    error payloads can be inspected before web3 formats them.
    """
    def __init__(self, web3_instance, session=None):
        self.web3 = web3_instance
        # Session handed to the provider; closed by close() when set
        self.session = session

    @classmethod
    def from_endpoint(cls, endpoint, timeout=config.RPC_TIMEOUT):
        if not endpoint:
            raise ConnectivityError("RPC endpoint not configured.")
        session = requests.Session()
        web3_instance = Web3(Web3.HTTPProvider(endpoint, request_kwargs={"timeout": timeout}, session=session))
        source = cls(web3_instance, session=session)
        try:
            source.check_connectivity()
        except Exception:
            source.close()
            raise
        return source

    def close(self):
        if self.session is not None:
            self.session.close()
            self.session = None

    def _call(self, method, params, height=None):
        try:
            response = self.web3.provider.make_request(method, params)
        except requests.exceptions.RequestException as e:
            raise ConnectivityError(f"{method} failed: {e}", height=height) from e
        except (ValueError, Web3Exception) as e:
            raise ProtocolError(f"{method} returned an invalid response: {e}", height=height) from e

        if not isinstance(response, dict):
            raise ProtocolError(f"{method} returned {type(response).__name__}, expected an object", height=height)
        if response.get("error"):
            raise ProtocolError(f"{method} returned error: {response['error']}", height=height)
        if "result" not in response:
            raise ProtocolError(f"{method} response has no result", height=height)
        return response["result"]

    def check_connectivity(self):
        """Fetch the latest block to make sure the endpoint answers at all."""
        block = self._call("eth_getBlockByNumber", ["latest", False])
        if not isinstance(block, dict):
            raise ProtocolError(f"latest block has unexpected shape: {block!r}")
        logger.debug("Connected, latest block %s", block.get("number"))

    def get_head_height(self):
        return decode_quantity(self._call("eth_blockNumber", []), "block number")

    def get_block_timestamp(self, height):
        block = self._call("eth_getBlockByNumber", [Web3.to_hex(height), False], height=height)
        if block is None:
            raise NotFoundError(height)
        if not isinstance(block, dict) or "timestamp" not in block:
            raise ProtocolError(f"block {height} has no timestamp", height=height)
        return decode_quantity(block["timestamp"], f"block {height} timestamp")
