from __future__ import annotations

from openmods.core.result import Err, Ok
from openmods.net.http import HttpClient, HttpError, MockHttpClient, RealHttpClient, _decode_object


class TestMockHttpClient:
    def test_configured_response(self) -> None:
        client = MockHttpClient()
        client.set_json("https://pay.example/a", {"tag": "payRequest"})
        assert client.get_json("https://pay.example/a") == Ok({"tag": "payRequest"})
        assert client.calls == ["https://pay.example/a"]

    def test_unknown_url_is_404(self) -> None:
        result = MockHttpClient().get_json("https://pay.example/missing")
        assert isinstance(result, Err)
        assert result.error.status == 404

    def test_configured_error(self) -> None:
        client = MockHttpClient()
        error = HttpError(url="https://pay.example/a", status=0, message="connection refused")
        client.set_json("https://pay.example/a", error)
        assert client.get_json("https://pay.example/a") == Err(error)


class TestHttpError:
    def test_str_with_status(self) -> None:
        assert str(HttpError("https://x", 500, "Server Error")) == "HTTP 500: Server Error (https://x)"

    def test_str_network_error(self) -> None:
        assert str(HttpError("https://x", 0, "timed out")) == "timed out (https://x)"


def test_clients_satisfy_protocol() -> None:
    assert isinstance(MockHttpClient(), HttpClient)
    assert isinstance(RealHttpClient(), HttpClient)


def test_real_client_rejects_unsupported_scheme() -> None:
    result = RealHttpClient(timeout=1.0).get_json("notaurl")
    assert isinstance(result, Err)
    assert result.error.status == 0


class TestDecodeObject:
    def test_object(self) -> None:
        assert _decode_object("https://x", b'{"pr": "lnbc1"}') == Ok({"pr": "lnbc1"})

    def test_array_is_rejected(self) -> None:
        result = _decode_object("https://x", b"[1, 2]")
        assert isinstance(result, Err)
        assert "not a JSON object" in result.error.message

    def test_garbage_is_rejected(self) -> None:
        result = _decode_object("https://x", b"<html>")
        assert isinstance(result, Err)
        assert "not JSON" in result.error.message
