"""
Tests for gateway.api.validators.
"""

import pytest

from gateway.api.validators import (
    ValidationError,
    validate_instance_request,
    validate_migrate_payload,
    validate_node_payload,
    validate_send_payload,
    validate_state_key,
)
from gateway.domain.types import Provider


class TestInstanceRequest:

    def test_minimal(self):
        req = validate_instance_request({"phone": "+33612345678", "provider": "baileys"})
        assert req.phone == "+33612345678"
        assert req.provider is Provider.BAILEYS
        assert req.name is None
        assert req.cpu is None

    def test_full(self):
        req = validate_instance_request({
            "name": "Sales",
            "phone": "111222333",
            "provider": "whatsmeow",
            "webhook": "https://hooks.example.com/in",
            "resources": {"cpu": "1.5", "memory": "1G"},
        })
        assert req.name == "Sales"
        assert req.webhook == "https://hooks.example.com/in"
        assert (req.cpu, req.memory) == ("1.5", "1G")

    def test_empty_name_is_none(self):
        req = validate_instance_request({"phone": "111222333", "provider": "whatsmeow", "name": ""})
        assert req.name is None

    @pytest.mark.parametrize("body", [
        None,
        [],
        {"phone": 111222333, "provider": "whatsmeow"},
        {"phone": "111222333", "provider": "whatsmeow", "name": 5},
        {"phone": "111222333", "provider": "whatsmeow", "resources": "big"},
        {"phone": "111222333", "provider": "whatsmeow", "resources": {"memory": "lots"}},
    ])
    def test_rejected(self, body):
        with pytest.raises(ValidationError):
            validate_instance_request(body)

    def test_unknown_provider_lists_allowed(self):
        with pytest.raises(ValidationError, match="whatsmeow"):
            validate_instance_request({"phone": "111222333", "provider": "signal"})


class TestOtherPayloads:

    def test_send_text_too_long(self):
        with pytest.raises(ValidationError):
            validate_send_payload({"to": "111", "text": "x" * 5000})

    @pytest.mark.parametrize("body,expected", [
        (None, None), ({}, None), ({"target_node": 2}, "2"), ({"target_node": "worker-2"}, "worker-2"),
    ])
    def test_migrate(self, body, expected):
        assert validate_migrate_payload(body) == expected

    @pytest.mark.parametrize("target", [True, ["worker-2"], 2.5])
    def test_migrate_rejects_other_types(self, target):
        with pytest.raises(ValidationError):
            validate_migrate_payload({"target_node": target})

    @pytest.mark.parametrize("docker_host", [
        "unix:///var/run/docker.sock", "/var/run/docker.sock", "tcp://10.0.0.1:2375", "10.0.0.1:2375",
    ])
    def test_node_docker_host_forms(self, docker_host):
        fields = validate_node_payload({"name": "w", "docker_host": docker_host, "public_host": "w.example.com"})
        assert fields["docker_host"] == docker_host

    def test_node_partial_requires_a_field(self):
        with pytest.raises(ValidationError):
            validate_node_payload({}, partial=True)

    def test_state_key_length(self):
        assert validate_state_key("creds") == "creds"
        with pytest.raises(ValidationError):
            validate_state_key("k" * 1000)
