"""
Pydantic models for gateway configuration.

Mirrors the defaults dict in loader.py, providing typed access
to all gateway.yml settings via GatewayConfig.settings().
"""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, field_validator

from gateway.config.settings import PROVIDERS


class ContainersConfig(BaseModel):
    model_config = ConfigDict(extra="ignore")

    # provider -> image; providers missing here are rejected at provisioning time
    images: dict[str, str] = {"whatsmeow": "jelipro/whatsapp-gateway-whatsmeow:latest"}
    connector_port: int = 8080
    stop_timeout: int = 10
    default_cpu: str = "0.5"
    default_memory: str = "512m"
    restart_policy: str = "unless-stopped"
    managed_by: str = "whatsapp-gateway"

    @field_validator("images")
    @classmethod
    def _known_providers(cls, value: dict[str, str]) -> dict[str, str]:
        unknown = set(value) - set(PROVIDERS)
        if unknown:
            raise ValueError(f"Unknown providers in containers.images: {sorted(unknown)}")
        return value


class EngineConfig(BaseModel):
    model_config = ConfigDict(extra="ignore")

    api_version: str = "1.41"
    timeout: int = 60


class IngressConfig(BaseModel):
    model_config = ConfigDict(extra="ignore")

    enabled: bool = True
    entrypoint: str = "websecure"
    tls: bool = True
    cert_resolver: str = ""


class CircuitBreakerConfig(BaseModel):
    model_config = ConfigDict(extra="ignore")

    failure_threshold: int = 5
    recovery_timeout: float = 30.0


class ProxyConfig(BaseModel):
    model_config = ConfigDict(extra="ignore")

    scheme: str = "https"
    timeout: int = 15
    circuit_breaker: CircuitBreakerConfig = CircuitBreakerConfig()


class MonitorConfig(BaseModel):
    model_config = ConfigDict(extra="ignore")

    enabled: bool = True
    interval: int = 30


class RateLimitingConfig(BaseModel):
    model_config = ConfigDict(extra="ignore")

    enabled: bool = True
    default_limit: str = "200/minute"
    write_limit: str = "30/minute"


class SecurityConfig(BaseModel):
    model_config = ConfigDict(extra="ignore")

    rate_limiting: RateLimitingConfig = RateLimitingConfig()


class LoggingConfig(BaseModel):
    model_config = ConfigDict(extra="ignore")

    level: str = "INFO"


class GatewaySettings(BaseModel):
    """Root settings model mirroring gateway.yml structure."""

    model_config = ConfigDict(extra="ignore")

    containers: ContainersConfig = ContainersConfig()
    engine: EngineConfig = EngineConfig()
    ingress: IngressConfig = IngressConfig()
    proxy: ProxyConfig = ProxyConfig()
    monitor: MonitorConfig = MonitorConfig()
    security: SecurityConfig = SecurityConfig()
    logging: LoggingConfig = LoggingConfig()
