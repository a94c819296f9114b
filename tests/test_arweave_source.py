import json

import pytest
import requests

from arweave_source import ArweaveSource
from block_search import find_closest_block
from errors import ConnectivityError, NotFoundError, ProtocolError

GATEWAY = "https://arweave.example"


def make_response(status_code=200, payload=None, body=None, url=GATEWAY):
    response = requests.Response()
    response.status_code = status_code
    response.reason = {200: "OK", 400: "Bad Request", 404: "Not Found", 502: "Bad Gateway"}.get(status_code)
    response.url = url
    response._content = body.encode() if body is not None else json.dumps(payload).encode()
    return response


class FakeSession:
    def __init__(self, routes=None, error=None):
        self.routes = routes or {}
        self.error = error
        self.calls = []
        self.closed = False

    def close(self):
        self.closed = True

    def get(self, url, timeout=None):
        self.calls.append((url, timeout))
        if self.error is not None:
            raise self.error
        path = url[len(GATEWAY):]
        if path not in self.routes:
            return make_response(404, body="Not Found", url=url)
        return self.routes[path]


def gateway_routes(head, timestamp_of):
    routes = {"/info": make_response(payload={"network": "arweave.N.1", "height": head, "blocks": head + 1})}
    for height in range(head + 1):
        routes[f"/block/height/{height}"] = make_response(payload={"height": height, "timestamp": timestamp_of(height)})
    return routes


class TestArweaveSource:

    def test_head_height(self):
        session = FakeSession(gateway_routes(3, lambda h: h))
        source = ArweaveSource(GATEWAY, session=session, timeout=7)

        assert source.get_head_height() == 3
        assert session.calls == [(GATEWAY + "/info", 7)]

    def test_trailing_slash_is_dropped(self):
        session = FakeSession(gateway_routes(3, lambda h: h))
        source = ArweaveSource(GATEWAY + "/", session=session)
        source.get_head_height()
        assert session.calls[0][0] == GATEWAY + "/info"

    def test_block_timestamp(self):
        session = FakeSession(gateway_routes(10, lambda h: 1717200000 + 120 * h))
        source = ArweaveSource(GATEWAY, session=session)

        assert source.get_block_timestamp(4) == 1717200480
        assert session.calls[-1][0] == GATEWAY + "/block/height/4"

    def test_missing_block(self):
        source = ArweaveSource(GATEWAY, session=FakeSession(gateway_routes(10, lambda h: h)))
        with pytest.raises(NotFoundError) as excinfo:
            source.get_block_timestamp(11)
        assert excinfo.value.height == 11

    def test_server_error_is_connectivity(self):
        routes = {"/block/height/2": make_response(502, body="upstream unavailable")}
        source = ArweaveSource(GATEWAY, session=FakeSession(routes))
        with pytest.raises(ConnectivityError) as excinfo:
            source.get_block_timestamp(2)
        assert excinfo.value.height == 2

    def test_client_error_is_protocol(self):
        routes = {"/info": make_response(400, body="bad request")}
        source = ArweaveSource(GATEWAY, session=FakeSession(routes))
        with pytest.raises(ProtocolError):
            source.get_head_height()

    def test_missing_info_is_protocol(self):
        source = ArweaveSource(GATEWAY, session=FakeSession({}))
        with pytest.raises(ProtocolError):
            source.get_head_height()

    def test_invalid_json(self):
        routes = {"/info": make_response(body="<html>maintenance</html>")}
        source = ArweaveSource(GATEWAY, session=FakeSession(routes))
        with pytest.raises(ProtocolError):
            source.get_head_height()

    @pytest.mark.parametrize("payload", [{}, {"timestamp": "1717200000"}, {"timestamp": None}, {"timestamp": True}, []])
    def test_bad_timestamp_field(self, payload):
        routes = {"/block/height/1": make_response(payload=payload)}
        source = ArweaveSource(GATEWAY, session=FakeSession(routes))
        with pytest.raises(ProtocolError):
            source.get_block_timestamp(1)

    def test_transport_failure(self):
        session = FakeSession(error=requests.exceptions.ConnectTimeout("timed out"))
        source = ArweaveSource(GATEWAY, session=session)
        with pytest.raises(ConnectivityError):
            source.get_head_height()
        with pytest.raises(ConnectivityError) as excinfo:
            source.get_block_timestamp(9)
        assert excinfo.value.height == 9

    def test_empty_gateway(self):
        with pytest.raises(ConnectivityError):
            ArweaveSource.from_endpoint("")

    def test_closest_block_over_gateway(self):
        session = FakeSession(gateway_routes(16, lambda h: 1000 + 100 * h))
        source = ArweaveSource(GATEWAY, session=session)
        assert find_closest_block(source, 1550) == 6

    def test_close_releases_own_session(self, monkeypatch):
        closed = []
        monkeypatch.setattr(requests.Session, "close", lambda self: closed.append(self))

        source = ArweaveSource.from_endpoint(GATEWAY, timeout=3)
        source.close()

        assert closed == [source.session]
        assert source.timeout == 3

    def test_close_leaves_callers_session_open(self):
        session = FakeSession()
        ArweaveSource(GATEWAY, session=session).close()
        assert not session.closed
