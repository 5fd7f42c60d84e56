"""Provider registry: config document operations and switching."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path

from ai_provider.config import (
    DEFAULT_ENDPOINT,
    DEFAULT_SUBSCRIPTION_TOOL,
    ClaudeProvider,
    Config,
    Provider,
    ProviderOptions,
    SubscriptionProvider,
    load_config,
    requires_api_key,
    save_config,
    validate_name,
)
from ai_provider.credentials import CredentialStore
from ai_provider.exceptions import AlreadyExistsError, NotFoundError, ValidationError
from ai_provider.propagate import apply_provider, build_env
from ai_provider.targets import DiscoveredConfig, Target, create_targets, target_by_id

logger = logging.getLogger(__name__)


@dataclass
class ActiveProvider:
    provider: Provider
    secret: str | None = None


def provider_from_discovered(name: str, discovered: DiscoveredConfig) -> Provider:
    """Build a provider profile from settings found in a tool's config.

    A discovered API key means a direct Claude provider; without one the
    tool is assumed to be logged in through its own subscription.
    """
    options = ProviderOptions(
        always_thinking=discovered.always_thinking,
        disable_telemetry=True if discovered.disable_telemetry else None,
        disable_betas=True if discovered.disable_betas else None,
    )
    if discovered.secret:
        return ClaudeProvider(
            name=name,
            endpoint=discovered.endpoint or DEFAULT_ENDPOINT,
            model=discovered.model,
            small_model=discovered.small_model,
            options=options,
            custom_envs=dict(discovered.custom_envs),
            headers=dict(discovered.custom_headers),
        )
    return SubscriptionProvider(
        name=name,
        tool=DEFAULT_SUBSCRIPTION_TOOL,
        model=discovered.model,
        small_model=discovered.small_model,
        options=options,
        custom_envs=dict(discovered.custom_envs),
    )


class ProviderRegistry:
    """Every operation loads the config document and saves it on success."""

    def __init__(
        self,
        config_path: Path | None = None,
        credentials: CredentialStore | None = None,
        targets: list[Target] | None = None,
    ):
        self.config_path = config_path
        self.credentials = credentials or CredentialStore()
        self.targets = targets if targets is not None else create_targets()

    def _load(self) -> Config:
        return load_config(self.config_path)

    def _save(self, config: Config) -> None:
        save_config(config, self.config_path)

    @staticmethod
    def _require(config: Config, name: str) -> Provider:
        provider = config.get_provider(name)
        if provider is None:
            raise NotFoundError(f"Provider '{name}' not found")
        return provider

    def _require_target(self, target_id: str) -> None:
        if target_by_id(self.targets, target_id) is None:
            known = ", ".join(t.id for t in self.targets)
            raise NotFoundError(f"Unknown target '{target_id}'. Known targets: {known}")

    def list_providers(self) -> list[Provider]:
        return self._load().providers

    def get(self, name: str) -> Provider:
        return self._require(self._load(), name)

    @property
    def active_name(self) -> str | None:
        return self._load().active_provider

    @property
    def previous_name(self) -> str | None:
        return self._load().previous_provider

    def get_secret(self, name: str) -> str | None:
        return self.credentials.get(name)

    def add(self, provider: Provider, secret: str | None = None) -> None:
        """Append a provider. The first one added becomes active."""
        if not validate_name(provider.name):
            raise ValidationError(
                "Invalid provider name. Use only letters, numbers, hyphens, and underscores."
            )
        config = self._load()
        if config.get_provider(provider.name) is not None:
            raise AlreadyExistsError(f"Provider '{provider.name}' already exists")

        if secret and requires_api_key(provider):
            self.credentials.set(provider.name, secret)

        config.providers.append(provider)
        if len(config.providers) == 1:
            config.active_provider = provider.name

        self._save(config)
        logger.debug("Added provider '%s'", provider.name)

    def remove(self, name: str) -> None:
        """Remove a provider and its API key.

        If it was active, the first remaining provider takes over.
        """
        config = self._load()
        provider = self._require(config, name)

        if requires_api_key(provider):
            self.credentials.delete(name)

        config.providers.remove(provider)

        if config.active_provider == name:
            config.active_provider = config.providers[0].name if config.providers else None
        if config.previous_provider == name:
            config.previous_provider = None

        self._save(config)
        logger.debug("Removed provider '%s'", name)

    def set_active(self, name: str) -> list[str]:
        """Make a provider active and write it into every applicable target.

        Returns labels of the targets that were updated.
        """
        config = self._load()
        provider = self._require(config, name)

        config.previous_provider = config.active_provider
        config.active_provider = name

        secret = self.credentials.get(name) if requires_api_key(provider) else None
        env, applied_keys = build_env(provider, secret)
        updated = apply_provider(
            provider,
            env,
            self.targets,
            previous_keys=config.last_applied_env_keys,
        )

        config.last_applied_env_keys = applied_keys
        self._save(config)
        return updated

    def set_active_previous(self) -> tuple[str, list[str]]:
        """Switch back to the previously active provider."""
        previous = self.previous_name
        if not previous:
            raise NotFoundError("No previous provider to switch back to")
        return previous, self.set_active(previous)

    def get_active(self) -> ActiveProvider | None:
        config = self._load()
        if not config.active_provider:
            return None
        provider = config.get_provider(config.active_provider)
        if provider is None:
            return None

        secret = None
        if requires_api_key(provider):
            secret = self.credentials.get(provider.name) or None
        return ActiveProvider(provider=provider, secret=secret)

    def set_env(self, name: str, key: str, value: str, target_id: str | None = None) -> None:
        """Set a custom env var globally, or for one target only."""
        config = self._load()
        provider = self._require(config, name)

        if target_id:
            self._require_target(target_id)
            provider.target_envs.setdefault(target_id, {})[key] = value
        else:
            provider.custom_envs[key] = value

        self._save(config)

    def delete_env(self, name: str, key: str, target_id: str | None = None) -> bool:
        """Remove a custom env var. Returns False if it wasn't set."""
        config = self._load()
        provider = self._require(config, name)

        if target_id:
            self._require_target(target_id)
            envs = provider.target_envs.get(target_id)
            if not envs or key not in envs:
                return False
            del envs[key]
            if not envs:
                del provider.target_envs[target_id]
        else:
            if key not in provider.custom_envs:
                return False
            del provider.custom_envs[key]

        self._save(config)
        return True

    def import_discovered(self, name: str, discovered: DiscoveredConfig) -> list[str]:
        """Save discovered settings as a new provider and activate it."""
        provider = provider_from_discovered(name, discovered)
        self.add(provider, discovered.secret)
        return self.set_active(name)
