"""Cline for VS Code target."""

from __future__ import annotations

from ai_provider.settings import read_json, write_json
from ai_provider.targets.base import (
    OPENAI_MODE,
    SUBSCRIPTION_MODE,
    ApplyOptions,
    ExtensionTarget,
    api_mode,
)


class ClineTarget(ExtensionTarget):
    """Cline keeps its API provider config in its own settings file."""

    id = "cline"
    label = "Cline for VSCode"
    extension_id = "saoudrizwan.claude-dev"
    settings_name = "clineSettings.json"

    def is_installed(self) -> bool:
        return self.extension_dir is not None and self.extension_dir.exists()

    def write(self, options: ApplyOptions) -> bool:
        if self.settings_path is None:
            return False

        # The settings file may not exist yet on a fresh install.
        settings = read_json(self.settings_path)
        env = options.env
        token = env.get("ANTHROPIC_AUTH_TOKEN")
        model = options.model or env.get("ANTHROPIC_MODEL")
        mode = api_mode(env)

        if mode == SUBSCRIPTION_MODE:
            settings["apiProvider"] = "anthropic"
            settings.pop("apiKey", None)
            if model:
                settings["apiModelId"] = model
        elif mode == OPENAI_MODE:
            settings["apiProvider"] = "openai"
            settings["openAiBaseUrl"] = env["ANTHROPIC_BASE_URL"]
            settings["openAiApiKey"] = token
            if model:
                settings["openAiModelId"] = model
            settings.pop("apiKey", None)
        else:
            settings["apiProvider"] = "anthropic"
            settings["apiKey"] = token
            if model:
                settings["apiModelId"] = model
            settings.pop("openAiBaseUrl", None)
            settings.pop("openAiApiKey", None)

        write_json(self.settings_path, settings)
        return True
