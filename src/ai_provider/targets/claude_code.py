"""Claude Code CLI target (~/.claude/settings.json)."""

from __future__ import annotations

import json
import logging
from pathlib import Path

from ai_provider.config import DEFAULT_ENDPOINT
from ai_provider.settings import read_json, write_json
from ai_provider.targets.base import ApplyOptions, DiscoveredConfig, Target

logger = logging.getLogger(__name__)

# Env keys that map onto provider fields; everything else is a custom env.
KNOWN_ENV_KEYS = frozenset(
    {
        "ANTHROPIC_AUTH_TOKEN",
        "ANTHROPIC_API_KEY",
        "ANTHROPIC_BASE_URL",
        "ANTHROPIC_MODEL",
        "ANTHROPIC_DEFAULT_HAIKU_MODEL",
        "DISABLE_TELEMETRY",
        "CLAUDE_CODE_DISABLE_EXPERIMENTAL_BETAS",
        "ANTHROPIC_CUSTOM_HEADERS",
    }
)


def _env_block(settings: dict, path: Path) -> dict:
    env = settings.get("env") or {}
    if not isinstance(env, dict):
        raise ValueError(f"{path}: 'env' is not an object")
    return env


class ClaudeCodeTarget(Target):
    """Merges the provider env into the `env` block of Claude Code's settings."""

    id = "claude-code"
    label = "Claude Code (~/.claude/settings.json)"
    discoverable = True

    def __init__(self, settings_path: Path | None = None):
        self.settings_path = settings_path or Path.home() / ".claude" / "settings.json"

    def is_installed(self) -> bool:
        # Primary tool: always written, the file is created on demand.
        return True

    def write(self, options: ApplyOptions) -> bool:
        settings = read_json(self.settings_path)
        current_env = dict(_env_block(settings, self.settings_path))

        for key in options.previous_keys or []:
            current_env.pop(key, None)
        current_env.update(options.env)
        settings["env"] = current_env

        if options.always_thinking is not None:
            settings["alwaysThinkingEnabled"] = options.always_thinking

        write_json(self.settings_path, settings)
        return True

    def read(self) -> DiscoveredConfig | None:
        if not self.settings_path.exists():
            return None
        try:
            settings = read_json(self.settings_path)
            env = _env_block(settings, self.settings_path)
        except (OSError, ValueError) as e:
            logger.warning("Could not read %s: %s", self.settings_path, e)
            return None

        headers: dict[str, str] = {}
        raw_headers = env.get("ANTHROPIC_CUSTOM_HEADERS")
        if isinstance(raw_headers, str) and raw_headers:
            try:
                decoded = json.loads(raw_headers)
            except ValueError:
                decoded = None
            if isinstance(decoded, dict):
                headers = {str(k): str(v) for k, v in decoded.items()}

        return DiscoveredConfig(
            secret=env.get("ANTHROPIC_AUTH_TOKEN") or env.get("ANTHROPIC_API_KEY") or None,
            endpoint=env.get("ANTHROPIC_BASE_URL") or DEFAULT_ENDPOINT,
            model=env.get("ANTHROPIC_MODEL") or None,
            small_model=env.get("ANTHROPIC_DEFAULT_HAIKU_MODEL") or None,
            always_thinking=settings.get("alwaysThinkingEnabled"),
            disable_telemetry=env.get("DISABLE_TELEMETRY") == "1" or None,
            disable_betas=env.get("CLAUDE_CODE_DISABLE_EXPERIMENTAL_BETAS") == "1" or None,
            custom_headers=headers,
            custom_envs={k: v for k, v in env.items() if k not in KNOWN_ENV_KEYS},
        )
