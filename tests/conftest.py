"""Shared test fixtures."""

import json

import pytest

from ai_provider.config import ClaudeProvider, LiteLLMProvider, SubscriptionProvider
from ai_provider.manager import ProviderRegistry
from ai_provider.targets import create_targets


class MemoryCredentialStore:
    """Keychain stand-in holding secrets in a dict."""

    def __init__(self):
        self.secrets = {}

    def set(self, name, secret):
        self.secrets[name] = secret

    def get(self, name):
        return self.secrets.get(name)

    def delete(self, name):
        return self.secrets.pop(name, None) is not None


@pytest.fixture
def home(tmp_path):
    """A fake home directory for tool settings files."""
    path = tmp_path / "home"
    path.mkdir()
    return path


@pytest.fixture
def tmp_config(tmp_path):
    """Return a path for a temporary config file."""
    return tmp_path / "ai-providers" / "config.json"


@pytest.fixture
def credentials():
    return MemoryCredentialStore()


@pytest.fixture
def targets(home):
    return create_targets(home)


@pytest.fixture
def registry(tmp_config, credentials, targets):
    return ProviderRegistry(
        config_path=tmp_config, credentials=credentials, targets=targets
    )


@pytest.fixture
def claude_settings(home):
    return home / ".claude" / "settings.json"


@pytest.fixture
def vscode_settings(home):
    """Install VS Code: its user settings.json exists."""
    path = home / ".config" / "Code" / "User" / "settings.json"
    path.parent.mkdir(parents=True)
    path.write_text('{\n  "editor.fontSize": 14,\n}\n')
    return path


@pytest.fixture
def roo_settings(home):
    """Install Roo Code: its globalSettings.json exists."""
    path = (
        home / ".config" / "Code" / "User" / "globalStorage"
        / "rooveterinaryinc.roo-cline" / "settings" / "globalSettings.json"
    )
    path.parent.mkdir(parents=True)
    path.write_text(json.dumps({"apiProvider": "anthropic", "mode": "code"}))
    return path


@pytest.fixture
def cline_settings(home):
    """Install Cline: the extension directory exists, settings file doesn't yet."""
    ext_dir = (
        home / ".config" / "Code" / "User" / "globalStorage" / "saoudrizwan.claude-dev"
    )
    ext_dir.mkdir(parents=True)
    return ext_dir / "settings" / "clineSettings.json"


@pytest.fixture
def claude_provider():
    return ClaudeProvider(name="work", endpoint="https://api.anthropic.com")


@pytest.fixture
def litellm_provider():
    return LiteLLMProvider(
        name="proxy",
        endpoint="http://localhost:4000/v1",
        model="claude-sonnet-4",
        headers={"X-Proxy-Auth": "abc"},
    )


@pytest.fixture
def subscription_provider():
    return SubscriptionProvider(name="sub", tool="claude-code")
