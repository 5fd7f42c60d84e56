"""Provider profiles and the persisted config document."""

from __future__ import annotations

import os
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, ClassVar

from ai_provider.exceptions import ValidationError
from ai_provider.settings import read_json, write_json

CONFIG_DIR = Path(os.environ.get("AIC_CONFIG_DIR", "~/.ai-providers")).expanduser()
CONFIG_FILE = CONFIG_DIR / "config.json"

DEFAULT_ENDPOINT = "https://api.anthropic.com"
DEFAULT_LITELLM_ENDPOINT = "http://localhost:4000/v1"
DEFAULT_SUBSCRIPTION_TOOL = "claude-code"

_NAME_RE = re.compile(r"[A-Za-z0-9_-]+")


@dataclass(kw_only=True)
class ProviderOptions:
    always_thinking: bool | None = None
    disable_telemetry: bool | None = None
    disable_betas: bool | None = None

    def is_empty(self) -> bool:
        return (
            self.always_thinking is None
            and not self.disable_telemetry
            and not self.disable_betas
        )


@dataclass(kw_only=True)
class Provider:
    """Fields shared by every provider variant."""

    type: ClassVar[str] = ""

    name: str
    model: str | None = None
    small_model: str | None = None
    options: ProviderOptions = field(default_factory=ProviderOptions)
    custom_envs: dict[str, str] = field(default_factory=dict)
    # target id -> {KEY: VALUE}, layered over custom_envs for that target only
    target_envs: dict[str, dict[str, str]] = field(default_factory=dict)
    # None means every installed target
    targets: list[str] | None = None


@dataclass(kw_only=True)
class ApiProvider(Provider):
    """A provider reached over HTTP with an API key kept in the keychain."""

    endpoint: str
    headers: dict[str, str] = field(default_factory=dict)


@dataclass(kw_only=True)
class ClaudeProvider(ApiProvider):
    type: ClassVar[str] = "claude"


@dataclass(kw_only=True)
class LiteLLMProvider(ApiProvider):
    type: ClassVar[str] = "litellm"


@dataclass(kw_only=True)
class SubscriptionProvider(Provider):
    """A CLI subscription login; no endpoint and no API key."""

    type: ClassVar[str] = "subscription"

    tool: str


PROVIDER_TYPES: dict[str, type[Provider]] = {
    "claude": ClaudeProvider,
    "litellm": LiteLLMProvider,
    "subscription": SubscriptionProvider,
}


@dataclass
class Config:
    """Root config document."""

    providers: list[Provider] = field(default_factory=list)
    active_provider: str | None = None
    previous_provider: str | None = None
    last_applied_env_keys: list[str] = field(default_factory=list)

    def get_provider(self, name: str) -> Provider | None:
        for p in self.providers:
            if p.name == name:
                return p
        return None


def requires_api_key(provider: Provider) -> bool:
    return isinstance(provider, ApiProvider)


def is_valid_provider_type(type_name: str) -> bool:
    return type_name in PROVIDER_TYPES


def validate_name(name: str) -> bool:
    """Provider names may only use letters, digits, hyphens and underscores."""
    return bool(_NAME_RE.fullmatch(name))


def parse_env_entry(entry: str) -> tuple[str, str]:
    """Split a KEY=VALUE entry. The value is kept verbatim."""
    idx = entry.find("=")
    if idx <= 0 or not entry[:idx].strip():
        raise ValidationError(f"Invalid format '{entry}'. Use KEY=VALUE.")
    return entry[:idx].strip(), entry[idx + 1 :]


def parse_header_entry(entry: str) -> tuple[str, str]:
    """Split a 'Header-Name: value' entry."""
    idx = entry.find(":")
    if idx <= 0 or not entry[:idx].strip():
        raise ValidationError(f"Invalid format '{entry}'. Use Header-Name: value.")
    return entry[:idx].strip(), entry[idx + 1 :].strip()


def _options_from_dict(d: dict) -> ProviderOptions:
    return ProviderOptions(
        always_thinking=d.get("alwaysThinking"),
        disable_telemetry=d.get("disableTelemetry"),
        disable_betas=d.get("disableBetas"),
    )


def _options_to_dict(options: ProviderOptions) -> dict[str, Any]:
    od: dict[str, Any] = {}
    if options.always_thinking is not None:
        od["alwaysThinking"] = options.always_thinking
    if options.disable_telemetry:
        od["disableTelemetry"] = True
    if options.disable_betas:
        od["disableBetas"] = True
    return od


def provider_from_dict(d: dict) -> Provider:
    type_name = d.get("type", "")
    cls = PROVIDER_TYPES.get(type_name)
    if cls is None:
        raise ValidationError(
            f"Invalid provider type: {type_name}. "
            f"Must be one of: {', '.join(PROVIDER_TYPES)}"
        )

    common: dict[str, Any] = {
        "name": d["name"],
        "model": d.get("model"),
        "small_model": d.get("smallModel"),
        "options": _options_from_dict(d.get("options") or {}),
        "custom_envs": dict(d.get("customEnvs") or {}),
        "target_envs": {
            tid: dict(envs or {}) for tid, envs in (d.get("targetEnvs") or {}).items()
        },
        "targets": list(d["targets"]) if d.get("targets") is not None else None,
    }
    if issubclass(cls, ApiProvider):
        return cls(endpoint=d["endpoint"], headers=dict(d.get("headers") or {}), **common)
    return cls(tool=d.get("tool") or DEFAULT_SUBSCRIPTION_TOOL, **common)


def provider_to_dict(provider: Provider) -> dict[str, Any]:
    pd: dict[str, Any] = {"name": provider.name, "type": provider.type}
    if isinstance(provider, ApiProvider):
        pd["endpoint"] = provider.endpoint
        pd["hasApiKey"] = True
    elif isinstance(provider, SubscriptionProvider):
        pd["tool"] = provider.tool

    if provider.model is not None:
        pd["model"] = provider.model
    if provider.small_model is not None:
        pd["smallModel"] = provider.small_model
    if isinstance(provider, ApiProvider) and provider.headers:
        pd["headers"] = dict(provider.headers)
    options = _options_to_dict(provider.options)
    if options:
        pd["options"] = options
    if provider.custom_envs:
        pd["customEnvs"] = dict(provider.custom_envs)
    if provider.target_envs:
        pd["targetEnvs"] = {
            tid: dict(envs) for tid, envs in provider.target_envs.items()
        }
    if provider.targets is not None:
        pd["targets"] = list(provider.targets)
    return pd


def load_config(path: Path | None = None) -> Config:
    """Load config from disk.

    A missing file yields an empty Config, which is written out right away.
    """
    path = path or CONFIG_FILE
    if not path.exists():
        config = Config()
        save_config(config, path)
        return config

    data = read_json(path)
    return Config(
        providers=[provider_from_dict(p) for p in data.get("providers") or []],
        active_provider=data.get("activeProvider") or None,
        previous_provider=data.get("previousProvider") or None,
        last_applied_env_keys=list(data.get("lastAppliedEnvKeys") or []),
    )


def save_config(config: Config, path: Path | None = None) -> None:
    """Save config to disk atomically."""
    path = path or CONFIG_FILE

    data: dict[str, Any] = {}
    if config.active_provider:
        data["activeProvider"] = config.active_provider
    if config.previous_provider:
        data["previousProvider"] = config.previous_provider
    data["providers"] = [provider_to_dict(p) for p in config.providers]
    if config.last_applied_env_keys:
        data["lastAppliedEnvKeys"] = list(config.last_applied_env_keys)

    write_json(path, data)
