"""Tests for the provider registry and switching."""

import json

import pytest

from ai_provider.config import ClaudeProvider, LiteLLMProvider, SubscriptionProvider, load_config
from ai_provider.exceptions import AlreadyExistsError, NotFoundError, ValidationError
from ai_provider.manager import provider_from_discovered
from ai_provider.targets import DiscoveredConfig, target_by_id


def read(path):
    return json.loads(path.read_text())


class TestAddRemove:
    def test_first_provider_becomes_active(self, registry, credentials, tmp_config):
        registry.add(
            ClaudeProvider(name="p1", endpoint="https://api.anthropic.com"), "sk-x"
        )
        config = load_config(tmp_config)
        assert [p.name for p in config.providers] == ["p1"]
        assert config.active_provider == "p1"
        assert credentials.secrets == {"p1": "sk-x"}
        assert "sk-x" not in tmp_config.read_text()

    def test_second_provider_not_active(self, registry, claude_provider, subscription_provider):
        registry.add(claude_provider, "sk")
        registry.add(subscription_provider)
        assert registry.active_name == "work"

    def test_duplicate_raises(self, registry, claude_provider):
        registry.add(claude_provider, "sk")
        with pytest.raises(AlreadyExistsError):
            registry.add(ClaudeProvider(name="work", endpoint="x"), "other")
        assert registry.get_secret("work") == "sk"

    def test_invalid_name_raises(self, registry, tmp_config):
        with pytest.raises(ValidationError):
            registry.add(SubscriptionProvider(name="bad name", tool="t"))
        assert load_config(tmp_config).providers == []

    def test_subscription_secret_not_stored(self, registry, credentials, subscription_provider):
        registry.add(subscription_provider, "ignored")
        assert credentials.secrets == {}

    def test_add_then_remove_restores_list(self, registry, claude_provider, litellm_provider):
        registry.add(claude_provider, "sk")
        before = registry.list_providers()
        registry.add(litellm_provider, "sk-proxy")
        registry.remove("proxy")
        assert registry.list_providers() == before
        assert registry.get_secret("proxy") is None

    def test_remove_only_provider(self, registry, tmp_config, credentials):
        registry.add(ClaudeProvider(name="p1", endpoint="https://api.anthropic.com"), "sk-x")
        registry.remove("p1")
        config = load_config(tmp_config)
        assert config.providers == []
        assert config.active_provider is None
        assert "activeProvider" not in read(tmp_config)
        assert credentials.secrets == {}

    def test_remove_active_picks_first_remaining(self, registry, claude_provider, litellm_provider, subscription_provider):
        registry.add(claude_provider, "sk")
        registry.add(litellm_provider, "sk2")
        registry.add(subscription_provider)
        registry.set_active("sub")
        registry.remove("sub")
        assert registry.active_name == "work"

    def test_remove_previous_clears_pointer(self, registry, claude_provider, subscription_provider):
        registry.add(claude_provider, "sk")
        registry.add(subscription_provider)
        registry.set_active("sub")
        assert registry.previous_name == "work"
        registry.remove("work")
        assert registry.previous_name is None
        assert registry.active_name == "sub"

    def test_remove_missing_raises(self, registry):
        with pytest.raises(NotFoundError):
            registry.remove("ghost")


class TestSetActive:
    def test_writes_primary_tool(self, registry, claude_settings):
        registry.add(ClaudeProvider(name="p1", endpoint="https://api.anthropic.com"), "sk-x")
        updated = registry.set_active("p1")

        env = read(claude_settings)["env"]
        assert env["ANTHROPIC_AUTH_TOKEN"] == "sk-x"
        assert env["ANTHROPIC_BASE_URL"] == "https://api.anthropic.com"
        assert updated == ["Claude Code (~/.claude/settings.json)"]

    def test_unknown_provider_leaves_document(self, registry, claude_provider, tmp_config):
        registry.add(claude_provider, "sk")
        before = tmp_config.read_text()
        with pytest.raises(NotFoundError):
            registry.set_active("ghost")
        assert tmp_config.read_text() == before

    def test_records_applied_keys(self, registry, tmp_config, litellm_provider):
        registry.add(litellm_provider, "sk-proxy")
        registry.set_active("proxy")
        assert load_config(tmp_config).last_applied_env_keys == [
            "ANTHROPIC_AUTH_TOKEN",
            "ANTHROPIC_BASE_URL",
            "ANTHROPIC_MODEL",
            "ANTHROPIC_CUSTOM_HEADERS",
        ]

    def test_switch_cleans_previous_keys(self, registry, claude_settings, litellm_provider, subscription_provider):
        registry.add(litellm_provider, "sk-proxy")
        registry.add(subscription_provider)
        registry.set_active("proxy")
        registry.set_active("sub")
        assert read(claude_settings)["env"] == {}

    def test_user_env_survives_switch(self, registry, claude_settings, claude_provider):
        claude_settings.parent.mkdir(parents=True)
        claude_settings.write_text('{"env": {"MY_VAR": "mine"},}')
        registry.add(claude_provider, "sk")
        registry.set_active("work")
        assert read(claude_settings)["env"]["MY_VAR"] == "mine"

    def test_swap_toggle(self, registry, claude_provider, subscription_provider):
        registry.add(claude_provider, "sk")
        registry.add(subscription_provider)
        registry.set_active("work")
        registry.set_active("sub")
        registry.set_active("work")
        assert registry.previous_name == "sub"

        name, _ = registry.set_active_previous()
        assert name == "sub"
        assert registry.active_name == "sub"
        assert registry.previous_name == "work"

    def test_no_previous_raises(self, registry, claude_provider):
        registry.add(claude_provider, "sk")
        with pytest.raises(NotFoundError, match="No previous provider"):
            registry.set_active_previous()

    def test_idempotent(self, registry, claude_settings, vscode_settings, roo_settings, cline_settings, litellm_provider):
        litellm_provider.custom_envs = {"FOO": "bar"}
        registry.add(litellm_provider, "sk-proxy")
        registry.set_active("proxy")
        first = [p.read_text() for p in (claude_settings, vscode_settings, roo_settings, cline_settings)]
        registry.set_active("proxy")
        second = [p.read_text() for p in (claude_settings, vscode_settings, roo_settings, cline_settings)]
        assert first == second

    def test_updates_all_installed_targets(self, registry, vscode_settings, roo_settings, cline_settings, claude_provider):
        registry.add(claude_provider, "sk")
        updated = registry.set_active("work")
        assert updated == [t.label for t in registry.targets]

    def test_target_filter(self, registry, claude_settings, vscode_settings, claude_provider):
        claude_provider.targets = ["vscode-claude-code"]
        registry.add(claude_provider, "sk")
        updated = registry.set_active("work")
        assert updated == ["Claude Code for VSCode (settings.json)"]
        assert not claude_settings.exists()

    def test_per_target_override(self, registry, claude_settings, vscode_settings, claude_provider):
        claude_provider.custom_envs = {"LEVEL": "global"}
        claude_provider.target_envs = {"vscode-claude-code": {"LEVEL": "vscode"}}
        registry.add(claude_provider, "sk")
        registry.set_active("work")

        assert read(claude_settings)["env"]["LEVEL"] == "global"
        entries = read(vscode_settings)["claudeCode.environmentVariables"]
        assert {"name": "LEVEL", "value": "vscode"} in entries

    def test_broken_target_does_not_abort(self, registry, claude_settings, vscode_settings, claude_provider):
        vscode_settings.write_text("{broken")
        registry.add(claude_provider, "sk")
        updated = registry.set_active("work")
        assert updated == ["Claude Code (~/.claude/settings.json)"]
        assert registry.active_name == "work"

    def test_wrong_shaped_primary_settings_do_not_abort(self, registry, tmp_config, claude_settings, vscode_settings, claude_provider):
        claude_settings.parent.mkdir(parents=True)
        claude_settings.write_text('{"env": [1]}')
        registry.add(claude_provider, "sk")
        updated = registry.set_active("work")

        assert updated == ["Claude Code for VSCode (settings.json)"]
        assert claude_settings.read_text() == '{"env": [1]}'
        assert registry.active_name == "work"
        assert load_config(tmp_config).last_applied_env_keys == [
            "ANTHROPIC_AUTH_TOKEN",
            "ANTHROPIC_BASE_URL",
        ]


class TestGetActive:
    def test_none_when_empty(self, registry):
        assert registry.get_active() is None

    def test_fresh_secret(self, registry, credentials, claude_provider):
        registry.add(claude_provider, "sk-1")
        credentials.set("work", "sk-2")
        active = registry.get_active()
        assert active.provider == claude_provider
        assert active.secret == "sk-2"

    def test_subscription_has_no_secret(self, registry, subscription_provider):
        registry.add(subscription_provider)
        assert registry.get_active().secret is None


class TestEnv:
    def test_set_and_delete_global(self, registry, claude_provider):
        registry.add(claude_provider, "sk")
        registry.set_env("work", "FOO", "bar")
        assert registry.get("work").custom_envs == {"FOO": "bar"}
        assert registry.delete_env("work", "FOO") is True
        assert registry.get("work").custom_envs == {}
        assert registry.delete_env("work", "FOO") is False

    def test_per_target_map_removed_when_empty(self, registry, claude_provider, tmp_config):
        registry.add(claude_provider, "sk")
        registry.set_env("work", "FOO", "bar", "cline")
        assert registry.get("work").target_envs == {"cline": {"FOO": "bar"}}
        assert registry.delete_env("work", "FOO", "cline") is True
        assert registry.get("work").target_envs == {}
        assert "targetEnvs" not in read(tmp_config)["providers"][0]

    def test_delete_missing_target_key(self, registry, claude_provider):
        registry.add(claude_provider, "sk")
        assert registry.delete_env("work", "FOO", "cline") is False

    def test_unknown_target_raises(self, registry, claude_provider):
        registry.add(claude_provider, "sk")
        with pytest.raises(NotFoundError, match="Unknown target"):
            registry.set_env("work", "FOO", "bar", "cursor")

    def test_unknown_provider_raises(self, registry):
        with pytest.raises(NotFoundError):
            registry.set_env("ghost", "FOO", "bar")


class TestDiscovery:
    def test_round_trip_through_primary_tool(self, registry, targets, claude_provider):
        claude_provider.endpoint = "https://gateway.example.com"
        claude_provider.model = "opus"
        claude_provider.headers = {"X-A": "1"}
        claude_provider.custom_envs = {"HTTPS_PROXY": "http://corp"}
        registry.add(claude_provider, "sk-x")
        registry.set_active("work")

        cfg = target_by_id(targets, "claude-code").read()
        assert cfg.secret == "sk-x"
        assert cfg.endpoint == "https://gateway.example.com"
        assert cfg.model == "opus"
        assert cfg.custom_headers == {"X-A": "1"}
        assert cfg.custom_envs == {"HTTPS_PROXY": "http://corp"}

    def test_provider_from_discovered_with_key(self):
        provider = provider_from_discovered(
            "found",
            DiscoveredConfig(secret="sk", model="opus", disable_betas=True, custom_headers={"X": "1"}),
        )
        assert isinstance(provider, ClaudeProvider)
        assert provider.endpoint == "https://api.anthropic.com"
        assert provider.options.disable_betas is True
        assert provider.headers == {"X": "1"}

    def test_provider_from_discovered_without_key(self):
        provider = provider_from_discovered("found", DiscoveredConfig(model="opus"))
        assert isinstance(provider, SubscriptionProvider)
        assert provider.tool == "claude-code"

    def test_import_discovered_activates(self, registry, credentials, claude_provider):
        registry.add(claude_provider, "sk")
        updated = registry.import_discovered(
            "found", DiscoveredConfig(secret="sk-found", endpoint="http://proxy")
        )
        assert registry.active_name == "found"
        assert registry.previous_name == "work"
        assert credentials.get("found") == "sk-found"
        assert isinstance(registry.get("found"), ClaudeProvider)
        assert updated

    def test_import_existing_name_raises(self, registry, claude_provider):
        registry.add(claude_provider, "sk")
        with pytest.raises(AlreadyExistsError):
            registry.import_discovered("work", DiscoveredConfig())


def test_litellm_variant_round_trips(registry):
    registry.add(LiteLLMProvider(name="ll", endpoint="http://localhost:4000/v1"), "sk")
    assert isinstance(registry.get("ll"), LiteLLMProvider)
