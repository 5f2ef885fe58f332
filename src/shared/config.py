"""Gateway settings loaded from ``gateway.toml``.

The file carries defaults plus one overlay table per environment. The active
environment comes from ``GATEWAY_ENV`` (``development`` when unset), and a
handful of secrets can be supplied through the environment instead of the
file.
"""

import os
import tomllib
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

DEFAULT_CONFIG_PATH = Path(__file__).resolve().parents[2] / "gateway.toml"

ENVIRONMENTS = ("development", "test", "staging", "production")

# Environment variable -> (section, key)
_ENV_OVERRIDES = {
    "WC_SITE_URL": ("commerce", "site_url"),
    "WC_CONSUMER_KEY": ("commerce", "consumer_key"),
    "WC_CONSUMER_SECRET": ("commerce", "consumer_secret"),
    "JWT_SECRET": ("auth", "jwt_secret"),
}


@dataclass(frozen=True)
class CommerceSettings:
    backend: str = "woocommerce"
    site_url: str = "http://localhost:8080"
    consumer_key: str = ""
    consumer_secret: str = ""
    api_version: str = "wc/v3"
    store_api_version: str = "wc/store/v1"

    @property
    def rest_base_url(self) -> str:
        return f"{self.site_url.rstrip('/')}/wp-json/{self.api_version}/"

    @property
    def store_base_url(self) -> str:
        return f"{self.site_url.rstrip('/')}/wp-json/{self.store_api_version}/"


@dataclass(frozen=True)
class CartSettings:
    scan_limit: int = 10


@dataclass(frozen=True)
class SessionSettings:
    ttl_hours: float = 24
    sweep_interval_seconds: float = 3600


@dataclass(frozen=True)
class AuthSettings:
    jwt_secret: str = "dev-secret"
    jwt_algorithm: str = "HS256"


@dataclass(frozen=True)
class PaymentSettings:
    delay_seconds: float = 2.0
    decline_rate: float = 0.0


@dataclass(frozen=True)
class CacheSettings:
    capacity: int = 512
    ttl_seconds: float = 3600


@dataclass(frozen=True)
class CorsSettings:
    allow_origins: tuple[str, ...] = ("http://localhost:5173",)


@dataclass(frozen=True)
class GatewaySettings:
    env: str = "development"
    currency: str = "GBP"
    commerce: CommerceSettings = field(default_factory=CommerceSettings)
    cart: CartSettings = field(default_factory=CartSettings)
    sessions: SessionSettings = field(default_factory=SessionSettings)
    auth: AuthSettings = field(default_factory=AuthSettings)
    payments: PaymentSettings = field(default_factory=PaymentSettings)
    cache: CacheSettings = field(default_factory=CacheSettings)
    cors: CorsSettings = field(default_factory=CorsSettings)

    @property
    def is_production(self) -> bool:
        return self.env == "production"


def current_env() -> str:
    env = (os.getenv("GATEWAY_ENV") or "development").lower()
    if env not in ENVIRONMENTS:
        raise ValueError(f"Unknown GATEWAY_ENV {env!r}; expected one of {', '.join(ENVIRONMENTS)}")
    return env


def _overlay(base: dict[str, Any], overrides: dict[str, Any]) -> dict[str, Any]:
    merged = dict(base)
    for key, value in overrides.items():
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = _overlay(merged[key], value)
        else:
            merged[key] = value
    return merged


def _section(cls, raw: dict[str, Any]):
    values = dict(raw)
    if cls is CorsSettings and "allow_origins" in values:
        values["allow_origins"] = tuple(values["allow_origins"])
    return cls(**values)


def load_settings(path: Path | None = None, env: str | None = None) -> GatewaySettings:
    """Build ``GatewaySettings`` for ``env`` from the TOML file and the environment."""
    env = env or current_env()
    path = path or Path(os.getenv("GATEWAY_CONFIG", DEFAULT_CONFIG_PATH))

    raw: dict[str, Any] = {}
    if path.exists():
        with path.open("rb") as fh:
            raw = tomllib.load(fh)

    overlays = {name: raw.pop(name, {}) for name in ENVIRONMENTS}
    data = _overlay(raw, overlays.get(env, {}))

    for variable, (section, key) in _ENV_OVERRIDES.items():
        value = os.getenv(variable)
        if value:
            data.setdefault(section, {})[key] = value

    return GatewaySettings(
        env=env,
        currency=data.get("currency", "GBP"),
        commerce=_section(CommerceSettings, data.get("commerce", {})),
        cart=_section(CartSettings, data.get("cart", {})),
        sessions=_section(SessionSettings, data.get("sessions", {})),
        auth=_section(AuthSettings, data.get("auth", {})),
        payments=_section(PaymentSettings, data.get("payments", {})),
        cache=_section(CacheSettings, data.get("cache", {})),
        cors=_section(CorsSettings, data.get("cors", {})),
    )
