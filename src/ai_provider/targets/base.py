"""Abstract base class for target adapters."""

from __future__ import annotations

import logging
import os
import sys
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from pathlib import Path

from ai_provider.config import DEFAULT_ENDPOINT
from ai_provider.settings import read_json

logger = logging.getLogger(__name__)


@dataclass
class ApplyOptions:
    """What a target needs to write a provider into its settings."""

    env: dict[str, str]
    model: str | None = None
    # Only honoured by the Claude Code CLI target
    always_thinking: bool | None = None
    # Keys written by the previous switch; only passed to the Claude Code CLI target
    previous_keys: list[str] | None = None


@dataclass
class DiscoveredConfig:
    """Provider settings reconstructed from a tool's own config file."""

    secret: str | None = None
    endpoint: str | None = None
    model: str | None = None
    small_model: str | None = None
    always_thinking: bool | None = None
    disable_telemetry: bool | None = None
    disable_betas: bool | None = None
    custom_headers: dict[str, str] = field(default_factory=dict)
    custom_envs: dict[str, str] = field(default_factory=dict)


def vscode_user_dir(
    home: Path | None = None,
    platform: str | None = None,
    environ: dict[str, str] | None = None,
) -> Path | None:
    """Platform-specific VS Code user settings directory, or None if unknown."""
    home = home or Path.home()
    platform = platform or sys.platform
    environ = os.environ if environ is None else environ

    if platform == "darwin":
        return home / "Library" / "Application Support" / "Code" / "User"
    if platform.startswith("linux"):
        return home / ".config" / "Code" / "User"
    if platform == "win32":
        appdata = environ.get("APPDATA")
        if not appdata:
            return None
        return Path(appdata) / "Code" / "User"
    return None


def extension_storage_root(**kwargs) -> Path | None:
    """VS Code extension globalStorage root, or None if unknown."""
    user_dir = vscode_user_dir(**kwargs)
    if user_dir is None:
        return None
    return user_dir / "globalStorage"


class Target(ABC):
    """An AI tool whose config file can receive a provider."""

    id: str = ""
    label: str = ""
    discoverable: bool = False

    @abstractmethod
    def is_installed(self) -> bool:
        """Check if this tool appears to be installed."""

    @abstractmethod
    def write(self, options: ApplyOptions) -> bool:
        """Write options into the tool's settings.

        Returns False when there was nothing to write to. May raise
        OSError or ValueError; apply() turns those into warnings.
        """

    def apply(self, options: ApplyOptions) -> bool:
        """Write the provider into this target. Never raises.

        Returns True if the settings file was updated.
        """
        try:
            return self.write(options)
        except (OSError, ValueError) as e:
            logger.warning("Could not update %s settings: %s", self.label, e)
            return False

    def read(self) -> DiscoveredConfig | None:
        """Reconstruct provider settings from this tool's config file."""
        return None


# Ways a VS Code extension can reach the provider
SUBSCRIPTION_MODE = "subscription"
OPENAI_MODE = "openai"
DIRECT_MODE = "direct"


def api_mode(env: dict[str, str]) -> str:
    """Pick the extension's API mode from the provider env.

    No auth token means the extension should fall back to its own login; a
    token with a non-default base URL goes through the OpenAI-compatible
    provider; otherwise the Anthropic API is used directly.
    """
    if not env.get("ANTHROPIC_AUTH_TOKEN"):
        return SUBSCRIPTION_MODE
    base_url = env.get("ANTHROPIC_BASE_URL")
    if base_url and base_url != DEFAULT_ENDPOINT:
        return OPENAI_MODE
    return DIRECT_MODE


class ExtensionTarget(Target):
    """A VS Code extension that keeps its settings under globalStorage."""

    discoverable = True
    extension_id: str = ""
    settings_name: str = ""
    # Settings key holding a custom Anthropic base URL, if the extension has one
    anthropic_base_url_key: str | None = None

    def __init__(self, storage_root: Path | None = None):
        self.storage_root = storage_root or extension_storage_root()

    @property
    def extension_dir(self) -> Path | None:
        if self.storage_root is None:
            return None
        return self.storage_root / self.extension_id

    @property
    def settings_path(self) -> Path | None:
        if self.extension_dir is None:
            return None
        return self.extension_dir / "settings" / self.settings_name

    def read(self) -> DiscoveredConfig | None:
        path = self.settings_path
        if path is None or not path.exists():
            return None
        try:
            settings = read_json(path)
        except (OSError, ValueError) as e:
            logger.warning("Could not read %s: %s", path, e)
            return None

        if settings.get("apiProvider") == "openai":
            return DiscoveredConfig(
                secret=settings.get("openAiApiKey"),
                endpoint=settings.get("openAiBaseUrl"),
                model=settings.get("openAiModelId"),
            )

        endpoint = None
        if self.anthropic_base_url_key:
            endpoint = settings.get(self.anthropic_base_url_key)
        return DiscoveredConfig(
            secret=settings.get("apiKey"),
            endpoint=endpoint or DEFAULT_ENDPOINT,
            model=settings.get("apiModelId"),
        )
