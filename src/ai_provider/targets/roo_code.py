"""Roo Code for VS Code target."""

from __future__ import annotations

from ai_provider.config import DEFAULT_ENDPOINT
from ai_provider.settings import read_json, write_json
from ai_provider.targets.base import (
    OPENAI_MODE,
    SUBSCRIPTION_MODE,
    ApplyOptions,
    ExtensionTarget,
    api_mode,
)


class RooCodeTarget(ExtensionTarget):
    """Roo Code keeps its API provider settings in globalSettings.json."""

    id = "roo-code"
    label = "Roo Code for VSCode"
    extension_id = "rooveterinaryinc.roo-cline"
    settings_name = "globalSettings.json"
    anthropic_base_url_key = "anthropicBaseUrl"

    def is_installed(self) -> bool:
        return self.settings_path is not None and self.settings_path.exists()

    def write(self, options: ApplyOptions) -> bool:
        if not self.is_installed():
            return False

        settings = read_json(self.settings_path)
        env = options.env
        token = env.get("ANTHROPIC_AUTH_TOKEN")
        base_url = env.get("ANTHROPIC_BASE_URL")
        model = options.model or env.get("ANTHROPIC_MODEL")
        mode = api_mode(env)

        if mode == SUBSCRIPTION_MODE:
            # Keep the extension's native login
            settings["apiProvider"] = "anthropic"
            settings.pop("apiKey", None)
            settings.pop("anthropicBaseUrl", None)
            if model:
                settings["apiModelId"] = model
        elif mode == OPENAI_MODE:
            # LiteLLM or another OpenAI-compatible proxy
            settings["apiProvider"] = "openai"
            settings["openAiBaseUrl"] = base_url
            settings["openAiApiKey"] = token
            if model:
                settings["openAiModelId"] = model
            settings.pop("apiKey", None)
            settings.pop("anthropicBaseUrl", None)
        else:
            settings["apiProvider"] = "anthropic"
            settings["apiKey"] = token
            if base_url and base_url != DEFAULT_ENDPOINT:
                settings["anthropicBaseUrl"] = base_url
            else:
                settings.pop("anthropicBaseUrl", None)
            if model:
                settings["apiModelId"] = model
            for key in ("openAiBaseUrl", "openAiApiKey", "openAiModelId"):
                settings.pop(key, None)

        write_json(self.settings_path, settings)
        return True
