"""
Input validation functions for the API.
"""

from __future__ import annotations

import re
from typing import Any

from gateway.config.settings import (
    CPU_PATTERN,
    EMAIL_PATTERN,
    MAX_EMAIL_LENGTH,
    MAX_NAME_LENGTH,
    MAX_PHONE_LENGTH,
    MAX_STATE_KEY_LENGTH,
    MEMORY_PATTERN,
    NODE_NAME_PATTERN,
    PHONE_PATTERN,
    URL_PATTERN,
)
from gateway.domain.types import InstanceRequest, Provider

# unix:///path, /path, tcp://host:port, http(s)://host:port or host:port
_DOCKER_HOST_PATTERN = re.compile(r'^(unix://|tcp://|https?://|/)\S+$|^[^/\s:]+:[0-9]+$')
_PUBLIC_HOST_PATTERN = re.compile(r'^[a-zA-Z0-9.-]+(:[0-9]+)?$')

MAX_TEXT_LENGTH = 4096


class ValidationError(Exception):
    """Raised when input validation fails."""
    pass


def require_object(body: Any) -> dict[str, Any]:
    """Reject bodies that are missing or not a JSON object."""
    if not isinstance(body, dict):
        raise ValidationError("Request body must be a JSON object")
    return body


def _optional_str(body: dict[str, Any], field: str) -> str | None:
    value = body.get(field)
    if value is None:
        return None
    if not isinstance(value, str):
        raise ValidationError(f"{field} must be a string")
    return value


def validate_phone(phone: Any) -> str:
    """
    Validate a phone number.

    Raises:
        ValidationError: If phone is missing or malformed
    """
    if not phone or not isinstance(phone, str):
        raise ValidationError("phone is required")

    if len(phone) > MAX_PHONE_LENGTH:
        raise ValidationError(f"phone exceeds maximum length of {MAX_PHONE_LENGTH}")

    if not PHONE_PATTERN.match(phone):
        raise ValidationError("phone must contain digits only, optionally prefixed by +")

    return phone


def validate_provider(provider: Any) -> Provider:
    """
    Validate a provider name.

    Raises:
        ValidationError: If provider is not one of the supported connectors
    """
    if not provider:
        raise ValidationError("provider is required")
    try:
        return Provider(provider)
    except ValueError:
        allowed = ", ".join(p.value for p in Provider)
        raise ValidationError(f"provider must be one of: {allowed}") from None


def validate_url(url: str) -> str:
    """
    Validate URL format.

    Raises:
        ValidationError: If URL is invalid
    """
    if not URL_PATTERN.match(url):
        raise ValidationError("Invalid URL format (must start with http:// or https://)")

    return url


def validate_resources(resources: Any) -> tuple[str | None, str | None]:
    """
    Validate the optional ``resources`` object.

    Returns:
        (cpu, memory), each None when not given
    """
    if resources is None:
        return None, None
    resources = require_object(resources)

    cpu = _optional_str(resources, "cpu")
    if cpu is not None and not CPU_PATTERN.match(cpu):
        raise ValidationError("resources.cpu must be a number of cores, e.g. \"0.5\"")

    memory = _optional_str(resources, "memory")
    if memory is not None and not MEMORY_PATTERN.match(memory):
        raise ValidationError("resources.memory must be a size such as \"512m\" or \"2g\"")

    return cpu, memory


def validate_instance_request(body: Any) -> InstanceRequest:
    """
    Validate a create-instance body.

    ``{name?, phone, provider, webhook?, resources?: {cpu?, memory?}}``
    """
    body = require_object(body)

    name = _optional_str(body, "name")
    if name is not None and len(name) > MAX_NAME_LENGTH:
        raise ValidationError(f"name exceeds maximum length of {MAX_NAME_LENGTH}")

    webhook = _optional_str(body, "webhook")
    if webhook:
        validate_url(webhook)

    cpu, memory = validate_resources(body.get("resources"))

    return InstanceRequest(
        phone=validate_phone(body.get("phone")),
        provider=validate_provider(body.get("provider")),
        name=name or None,
        webhook=webhook or None,
        cpu=cpu,
        memory=memory,
    )


def validate_send_payload(body: Any) -> dict[str, str]:
    """Validate a message-send body ``{to, text}``."""
    body = require_object(body)
    to = body.get("to")
    text = body.get("text")
    if not to or not isinstance(to, str):
        raise ValidationError("to is required")
    if not text or not isinstance(text, str):
        raise ValidationError("text is required")
    if len(text) > MAX_TEXT_LENGTH:
        raise ValidationError(f"text exceeds maximum length of {MAX_TEXT_LENGTH}")
    return {"to": to, "text": text}


def validate_migrate_payload(body: Any) -> str | None:
    """Return the requested ``target_node`` as a string, if any. Integers are accepted."""
    if body is None:
        return None
    body = require_object(body)
    target = body.get("target_node")
    if target is None:
        return None
    if isinstance(target, bool) or not isinstance(target, (str, int)):
        raise ValidationError("target_node must be a string")
    return str(target)


def validate_node_payload(body: Any, partial: bool = False) -> dict[str, str]:
    """
    Validate a node create or update body.

    Args:
        body: ``{name, docker_host, public_host}``
        partial: Allow any subset of the fields (update)

    Returns:
        Validated fields present in the body
    """
    body = require_object(body)
    fields: dict[str, str] = {}

    for field in ("name", "docker_host", "public_host"):
        value = _optional_str(body, field)
        if value is None or value == "":
            if not partial:
                raise ValidationError(f"{field} is required")
            continue
        fields[field] = value

    if partial and not fields:
        raise ValidationError("At least one of name, docker_host, public_host is required")

    if "name" in fields:
        if len(fields["name"]) > MAX_NAME_LENGTH:
            raise ValidationError(f"name exceeds maximum length of {MAX_NAME_LENGTH}")
        if not NODE_NAME_PATTERN.match(fields["name"]):
            raise ValidationError("name contains invalid characters")
    if "docker_host" in fields and not _DOCKER_HOST_PATTERN.match(fields["docker_host"]):
        raise ValidationError("docker_host must be unix:///path, /path, tcp://host:port or host:port")
    if "public_host" in fields and not _PUBLIC_HOST_PATTERN.match(fields["public_host"]):
        raise ValidationError("public_host must be a hostname, optionally with a port")

    return fields


def validate_tenant_payload(body: Any) -> str:
    """Validate a tenant create body and return the email."""
    body = require_object(body)
    email = body.get("email")
    if not email or not isinstance(email, str):
        raise ValidationError("email is required")
    if len(email) > MAX_EMAIL_LENGTH:
        raise ValidationError(f"email exceeds maximum length of {MAX_EMAIL_LENGTH}")
    if not EMAIL_PATTERN.match(email):
        raise ValidationError("Invalid email format")
    return email


def validate_state_key(key: str) -> str:
    if not key or len(key) > MAX_STATE_KEY_LENGTH:
        raise ValidationError(f"key must be 1 to {MAX_STATE_KEY_LENGTH} characters")
    return key
