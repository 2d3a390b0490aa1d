from __future__ import annotations

import json
import logging
import os
from dataclasses import dataclass, fields
from pathlib import Path
from typing import Any, Mapping

import boto3
import yaml
from botocore.exceptions import BotoCoreError, ClientError

log = logging.getLogger("image-workshop-config")

CONFIG_PATH = Path.home() / ".config" / "image-workshop" / "config.yml"

# Environment variables that override file values, by AppConfig field.
_ENV_OVERRIDES = {
    "local_api_base_url": "LOCAL_API_BASE_URL",
    "aws_region": "AWS_REGION",
    "stability_api_host": "STABILITY_API_HOST",
    "http_timeout": "IMAGE_WORKSHOP_HTTP_TIMEOUT",
}


@dataclass(frozen=True)
class AppConfig:
    # Set to the local API URL (e.g. http://localhost:3000) to reach tool
    # backends over HTTP instead of Lambda Invoke.
    local_api_base_url: str = ""
    aws_region: str = "us-east-1"
    protocol_version: str = "2025-06-18"
    server_name: str = "image-workshop-mcp"
    server_version: str = "1.0.0"
    stability_api_host: str = "https://api.stability.ai"
    http_timeout: float = 120.0


def _validate(cfg: Mapping[str, Any]) -> dict[str, Any]:
    defaults = AppConfig().__dict__.copy()
    merged = {**defaults, **{k: v for k, v in cfg.items() if k in defaults}}
    merged["local_api_base_url"] = (
        str(merged["local_api_base_url"]).strip().rstrip("/") if merged.get("local_api_base_url") else ""
    )
    for key in ("aws_region", "protocol_version", "server_name", "server_version", "stability_api_host"):
        if not isinstance(merged.get(key), str) or not merged[key].strip():
            merged[key] = defaults[key]
    merged["stability_api_host"] = merged["stability_api_host"].rstrip("/")
    try:
        timeout = float(merged.get("http_timeout", defaults["http_timeout"]))
    except (TypeError, ValueError):
        timeout = defaults["http_timeout"]
    merged["http_timeout"] = timeout if timeout > 0 else defaults["http_timeout"]
    return merged


def load_config(path: Path | None = None, environ: Mapping[str, str] | None = None) -> AppConfig:
    """Defaults, then the YAML file (if any), then environment overrides."""
    env = os.environ if environ is None else environ
    if path is None:
        path = Path(env["IMAGE_WORKSHOP_CONFIG"]) if env.get("IMAGE_WORKSHOP_CONFIG") else CONFIG_PATH
    raw: dict[str, Any] = {}
    if path.exists():
        loaded = yaml.safe_load(path.read_text(encoding="utf-8")) or {}
        raw = loaded if isinstance(loaded, dict) else {}
    for field_name, env_key in _ENV_OVERRIDES.items():
        value = env.get(env_key)
        if value is not None and value != "":
            raw[field_name] = value
    merged = _validate(raw)
    return AppConfig(**{f.name: merged[f.name] for f in fields(AppConfig)})


# ---------------------------------------------------------------------------
# Config resolver: ENV -> Secrets Manager -> Parameter Store -> fallback
# ---------------------------------------------------------------------------

class ConfigError(RuntimeError):
    pass


@dataclass(frozen=True)
class ConfigResult:
    value: str
    source: str  # "env" | "secrets-manager" | "parameter-store" | "default"


@dataclass(frozen=True)
class KnownKey:
    env_key: str
    secret_id: str | None = None
    parameter_id: str | None = None
    fallback: str | None = None


KNOWN_KEYS: dict[str, KnownKey] = {
    "STABILITY_API_KEY": KnownKey("STABILITY_API_KEY", secret_id="image-workshop/stability-api-key"),
    "STABILITY_MODEL": KnownKey(
        "STABILITY_MODEL",
        parameter_id="/image-workshop/stability/model",
        fallback="stable-diffusion-xl-1024-v1-0",
    ),
}


class ConfigResolver:
    """Resolve configuration values through a fallback chain.

    Environment variables win so local runs can use a ``.env`` file, while
    deployed functions read API keys from Secrets Manager and plain settings
    from SSM Parameter Store.  AWS lookups that fail are logged and treated as
    "not found" so the chain keeps going.
    """

    def __init__(
        self,
        *,
        region: str = "us-east-1",
        enable_caching: bool = True,
        environ: Mapping[str, str] | None = None,
        secrets_client: Any = None,
        ssm_client: Any = None,
    ) -> None:
        self.region = region
        self.enable_caching = enable_caching
        self._environ = environ
        self._secrets_client = secrets_client
        self._ssm_client = ssm_client
        self._cache: dict[tuple[str, str, str], ConfigResult] = {}

    @property
    def environ(self) -> Mapping[str, str]:
        return os.environ if self._environ is None else self._environ

    def _secrets(self) -> Any:
        if self._secrets_client is None:
            self._secrets_client = boto3.client("secretsmanager", region_name=self.region)
        return self._secrets_client

    def _ssm(self) -> Any:
        if self._ssm_client is None:
            self._ssm_client = boto3.client("ssm", region_name=self.region)
        return self._ssm_client

    def get_secret(self, secret_id: str) -> str | None:
        try:
            response = self._secrets().get_secret_value(SecretId=secret_id)
        except (BotoCoreError, ClientError) as exc:
            log.warning("Failed to get secret %s: %s", secret_id, exc)
            return None
        return response.get("SecretString") or None

    def get_parameter(self, name: str, with_decryption: bool = True) -> str | None:
        try:
            response = self._ssm().get_parameter(Name=name, WithDecryption=with_decryption)
        except (BotoCoreError, ClientError) as exc:
            log.warning("Failed to get parameter %s: %s", name, exc)
            return None
        return (response.get("Parameter") or {}).get("Value") or None

    def get_config(
        self,
        env_key: str,
        *,
        secret_id: str | None = None,
        parameter_id: str | None = None,
        fallback: str | None = None,
        required: bool = False,
    ) -> ConfigResult:
        cache_key = (env_key, secret_id or "", parameter_id or "")
        if self.enable_caching and cache_key in self._cache:
            return self._cache[cache_key]

        result = self._lookup(env_key, secret_id, parameter_id, fallback)
        if result is None:
            if required:
                checked = f"ENV[{env_key}]"
                if secret_id:
                    checked += f", SecretsManager[{secret_id}]"
                if parameter_id:
                    checked += f", ParameterStore[{parameter_id}]"
                raise ConfigError(f"Required configuration not found: {env_key}. Checked: {checked}")
            raise ConfigError(f"Configuration not found: {env_key}")

        if self.enable_caching:
            self._cache[cache_key] = result
        return result

    def _lookup(
        self,
        env_key: str,
        secret_id: str | None,
        parameter_id: str | None,
        fallback: str | None,
    ) -> ConfigResult | None:
        env_value = self.environ.get(env_key)
        if env_value:
            return ConfigResult(env_value, "env")

        if secret_id:
            secret = self.get_secret(secret_id)
            if secret:
                # JSON secrets hold several keys; pick ours when present.
                try:
                    parsed = json.loads(secret)
                except ValueError:
                    parsed = None
                if isinstance(parsed, dict) and parsed.get(env_key):
                    return ConfigResult(str(parsed[env_key]), "secrets-manager")
                return ConfigResult(secret, "secrets-manager")

        if parameter_id:
            param = self.get_parameter(parameter_id)
            if param:
                return ConfigResult(param, "parameter-store")

        if fallback is not None:
            return ConfigResult(fallback, "default")
        return None

    def resolve(
        self,
        env_key: str,
        *,
        secret_id: str | None = None,
        parameter_id: str | None = None,
        fallback: str | None = None,
        required: bool = False,
    ) -> str:
        return self.get_config(
            env_key,
            secret_id=secret_id,
            parameter_id=parameter_id,
            fallback=fallback,
            required=required,
        ).value

    def resolve_known(self, name: str, *, required: bool = False) -> str:
        key = KNOWN_KEYS[name]
        return self.resolve(
            key.env_key,
            secret_id=key.secret_id,
            parameter_id=key.parameter_id,
            fallback=key.fallback,
            required=required,
        )

    def clear_cache(self) -> None:
        self._cache.clear()
