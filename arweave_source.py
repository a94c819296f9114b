import logging

import requests

import config
from errors import ConnectivityError, NotFoundError, ProtocolError

logger = logging.getLogger(__name__)

INFO_ENDPOINT = "/info"
BLOCK_BY_HEIGHT_ENDPOINT = "/block/height/{}"


def _require_int(payload, field, height=None):
    value = payload.get(field) if isinstance(payload, dict) else None
    if isinstance(value, bool) or not isinstance(value, int):
        raise ProtocolError(f"expected integer '{field}', got {value!r}", height=height)
    return value


class ArweaveSource:
    """
    Ledger source for an Arweave-style gateway.  Heights and timestamps come
    back as plain JSON integers, so no decoding is needed.
    """

    def __init__(self, gateway_url, session=None, timeout=config.RPC_TIMEOUT):
        if not gateway_url:
            raise ConnectivityError("Gateway endpoint not configured.")
        self.gateway_url = gateway_url.rstrip("/")
        # A session passed in belongs to the caller and is left open by close()
        self._owns_session = session is None
        self.session = session or requests.Session()
        self.timeout = timeout

    @classmethod
    def from_endpoint(cls, endpoint, timeout=config.RPC_TIMEOUT):
        return cls(endpoint, timeout=timeout)

    def close(self):
        if self._owns_session:
            self.session.close()

    def _get_json(self, path, height=None):
        url = self.gateway_url + path
        logger.debug("GET %s", url)
        try:
            response = self.session.get(url, timeout=self.timeout)
        except requests.exceptions.RequestException as e:
            raise ConnectivityError(f"GET {url} failed: {e}", height=height) from e

        if response.status_code == 404 and height is not None:
            raise NotFoundError(height)
        try:
            response.raise_for_status()
        except requests.exceptions.HTTPError as e:
            if response.status_code >= 500:
                raise ConnectivityError(f"GET {url} failed: {e}", height=height) from e
            raise ProtocolError(f"GET {url} failed: {e}", height=height) from e

        try:
            return response.json()
        except ValueError as e:
            raise ProtocolError(f"GET {url} returned invalid JSON", height=height) from e

    def get_head_height(self):
        return _require_int(self._get_json(INFO_ENDPOINT), "height")

    def get_block_timestamp(self, height):
        block = self._get_json(BLOCK_BY_HEIGHT_ENDPOINT.format(height), height=height)
        return _require_int(block, "timestamp", height=height)
