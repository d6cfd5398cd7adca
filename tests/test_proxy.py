"""
Tests for gateway.services.proxy (connector passthrough).
"""

from unittest.mock import MagicMock

import pytest
import requests

from gateway.domain.errors import UpstreamUnavailableError
from gateway.domain.types import Instance, Node, Provider
from gateway.resilience import reset_breakers
from gateway.services.proxy import InstanceProxy

INSTANCE = Instance(id=7, user_id=1, node_id=1, phone_number="111222333", provider=Provider.WHATSMEOW)
NODE = Node(id=1, name="worker-1", docker_host="10.0.0.1:2375", public_host="w1.example.com")


def _response(status=200, content=b"", content_type=None):
    resp = MagicMock()
    resp.status_code = status
    resp.content = content
    resp.headers = {"Content-Type": content_type} if content_type else {}
    return resp


@pytest.fixture(autouse=True)
def _fresh_breakers():
    reset_breakers()
    yield
    reset_breakers()


@pytest.fixture
def mock_request(mocker, mock_gateway_config):
    return mocker.patch("gateway.services.proxy.requests.request")


class TestForward:

    def test_url_and_timeout(self, mock_request):
        mock_request.return_value = _response(200, b"{}", "application/json")
        InstanceProxy().forward(INSTANCE, NODE, "status")

        mock_request.assert_called_once_with(
            "GET", "https://w1.example.com/instances/7/status", json=None, timeout=15,
        )

    def test_qr_image(self, mock_request):
        mock_request.return_value = _response(200, b"\x89PNG...", "image/png")
        resp = InstanceProxy().get_qr(INSTANCE, NODE)

        assert resp.status_code == 200
        assert resp.content == b"\x89PNG..."
        assert resp.content_type == "image/png"

    def test_qr_defaults_to_png(self, mock_request):
        mock_request.return_value = _response(200, b"\x89PNG...")
        assert InstanceProxy().get_qr(INSTANCE, NODE).content_type == "image/png"

    def test_connector_error_passes_through(self, mock_request):
        mock_request.return_value = _response(404, b'{"error":"QR code not available yet"}', "application/json")
        resp = InstanceProxy().get_qr(INSTANCE, NODE)

        assert resp.status_code == 404
        assert resp.content == b'{"error":"QR code not available yet"}'

    def test_send_forwards_json(self, mock_request):
        mock_request.return_value = _response(201, b'{"id":"m1"}', "application/json")
        resp = InstanceProxy().send_message(INSTANCE, NODE, {"to": "222", "text": "hi"})

        assert resp.status_code == 201
        assert mock_request.call_args.args == ("POST", "https://w1.example.com/instances/7/send")
        assert mock_request.call_args.kwargs["json"] == {"to": "222", "text": "hi"}

    @pytest.mark.parametrize("exc", [requests.ConnectionError("refused"), requests.Timeout("slow")])
    def test_unreachable(self, mock_request, exc):
        mock_request.side_effect = exc
        with pytest.raises(UpstreamUnavailableError):
            InstanceProxy().get_qr(INSTANCE, NODE)


class TestCircuit:

    def test_open_circuit_skips_network(self, mock_request):
        mock_request.side_effect = requests.ConnectionError("refused")
        proxy = InstanceProxy()

        # threshold is 3 in the test config
        for _ in range(3):
            with pytest.raises(UpstreamUnavailableError):
                proxy.get_qr(INSTANCE, NODE)

        mock_request.reset_mock()
        with pytest.raises(UpstreamUnavailableError):
            proxy.get_qr(INSTANCE, NODE)
        mock_request.assert_not_called()

    def test_connector_errors_do_not_trip(self, mock_request):
        mock_request.return_value = _response(500, b"oops", "text/plain")
        proxy = InstanceProxy()

        for _ in range(5):
            assert proxy.get_qr(INSTANCE, NODE).status_code == 500
        assert mock_request.call_count == 5

    def test_circuits_are_per_node(self, mock_request):
        other = Node(id=2, name="worker-2", docker_host="10.0.0.2:2375", public_host="w2.example.com")
        proxy = InstanceProxy()

        mock_request.side_effect = requests.ConnectionError("refused")
        for _ in range(3):
            with pytest.raises(UpstreamUnavailableError):
                proxy.get_qr(INSTANCE, NODE)

        mock_request.side_effect = None
        mock_request.return_value = _response(200, b"png", "image/png")
        assert proxy.get_qr(INSTANCE, other).status_code == 200
