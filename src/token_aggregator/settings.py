"""Settings module with unified configuration precedence: CLI > ENV > CONFIG FILE."""

from __future__ import annotations

import os
from pathlib import Path
from typing import Any

try:
    import tomllib  # py311+
except ModuleNotFoundError:  # pragma: no cover
    import tomli as tomllib  # type: ignore

from dotenv import load_dotenv
from pydantic import (
    Field,
    SecretStr,
    field_validator,
    model_validator,
)
from pydantic_settings import (
    BaseSettings,
    PydanticBaseSettingsSource,
    SettingsConfigDict,
)

from .constants import DEFAULT_NUMERAIRES, DEFAULT_ORACLES

load_dotenv()

SECRET_FIELDS = {"router_api_key"}


class AggregatorSettings(BaseSettings):
    """Single source of truth for configuration. Values may come from:
    - CLI (init kwargs)
    - ENV / .env (prefixed with TOKEN_AGGREGATOR_)
    - Config file (TOML), lowest precedence

    Do not read os.environ or files elsewhere in the codebase.
    """

    # --- network ---
    chain_id: int = 1
    rpc_url: str | None = None

    # --- on-chain collaborators ---
    oracle_address: str | None = None
    numeraire_address: str | None = None
    partner_address: str | None = None

    # --- liquidity router ---
    router_api_url: str = "https://api.zapper.fi/v1"
    router_api_key: SecretStr | None = None
    router_label: str = "yearn"

    # --- asset metadata ---
    asset_icons_url: str = (
        "https://raw.githubusercontent.com/yearn/yearn-assets/master/icons"
    )
    asset_index_url: str = (
        "https://api.github.com/repos/yearn/yearn-assets/contents/icons/multichain-tokens"
    )
    token_metadata_url: str = "https://meta.yearn.network/tokens/{chain_id}/all"

    # --- cache ---
    cache_ttl_seconds: float = Field(
        default=60.0,
        gt=0,
        description="Lifetime of a cached aggregation result, counted from fetch completion.",
    )
    cache_max_entries: int = Field(default=1024, gt=0)

    # --- transport throttling ---
    http_timeout: float = 10.0
    max_calls: int = 5
    rpc_delay: float = 0.05
    rpc_jitter: float = 0.05

    # --- logging ---
    log_level: str = "INFO"

    model_config = SettingsConfigDict(
        env_prefix="TOKEN_AGGREGATOR_",
        env_file=".env",
        extra="ignore",  # ignore unknown keys in env/config file
    )

    @field_validator("router_api_key", mode="before")
    @classmethod
    def wrap_secrets(cls, v: Any) -> SecretStr | None:
        """Wrap string secrets in SecretStr."""
        if v is None or isinstance(v, SecretStr):
            return v
        return SecretStr(v)

    @field_validator("log_level", mode="before")
    @classmethod
    def normalize_log_level(cls, v: Any) -> Any:
        return v.upper() if isinstance(v, str) else v

    @model_validator(mode="after")
    def set_derived_values(self) -> "AggregatorSettings":
        """Fill per-chain defaults for addresses left unset."""
        if self.numeraire_address is None:
            self.numeraire_address = DEFAULT_NUMERAIRES.get(self.chain_id)
        if self.oracle_address is None:
            self.oracle_address = DEFAULT_ORACLES.get(self.chain_id)
        return self

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ) -> tuple[PydanticBaseSettingsSource, ...]:
        """Custom config-file source with explicit precedence: CLI > ENV > FILE."""
        env_cfg = os.environ.get("TOKEN_AGGREGATOR_CONFIG")
        cfg_path = Path(env_cfg) if env_cfg else None

        class TomlConfigSource(PydanticBaseSettingsSource):
            def __init__(self, settings_cls: type[BaseSettings], path: Path | None):
                super().__init__(settings_cls)
                self._path = path

            def get_field_value(
                self, field: Any, field_name: str
            ) -> tuple[Any, str, bool]:
                return None, "", False

            def __call__(self) -> dict[str, Any]:
                if not self._path:
                    local_config = Path("token-aggregator.toml")
                    user_config = (
                        Path.home() / ".config" / "token-aggregator" / "config.toml"
                    )
                    if local_config.exists():
                        self._path = local_config
                    elif user_config.exists():
                        self._path = user_config
                    else:
                        return {}

                if not self._path.exists():
                    return {}

                with self._path.open("rb") as f:
                    data = tomllib.load(f)  # supports top-level or [token_aggregator]
                body = data.get("token_aggregator", data)
                if not isinstance(body, dict):
                    return {}

                for key in SECRET_FIELDS:
                    if key in body:
                        raise ValueError(
                            f"Security violation: '{key}' found in TOML config file. "
                            f"Secrets must only be provided via environment variables or CLI flags."
                        )

                return body

        return (
            init_settings,  # CLI (highest)
            env_settings,  # ENV
            TomlConfigSource(settings_cls, cfg_path),  # CONFIG (lowest)
            file_secret_settings,  # optional secrets dir
        )

    def as_safe_dict(self) -> dict[str, Any]:
        """Return the config as a dict with secrets redacted."""
        data = self.model_dump(mode="json")
        if self.router_api_key:
            data["router_api_key"] = "***redacted***"
        return data

    @property
    def rpc_url_required(self) -> str:
        """Get rpc_url, raising ValueError if not set."""
        if self.rpc_url is None:
            raise ValueError("rpc_url must be configured")
        return self.rpc_url

    @property
    def oracle_address_required(self) -> str:
        """Get oracle_address, raising ValueError if not set."""
        if self.oracle_address is None:
            raise ValueError(
                f"oracle_address must be configured for chain {self.chain_id}"
            )
        return self.oracle_address

    @property
    def numeraire_address_required(self) -> str:
        """Get numeraire_address, raising ValueError if not set."""
        if self.numeraire_address is None:
            raise ValueError(
                f"numeraire_address must be configured for chain {self.chain_id}"
            )
        return self.numeraire_address
