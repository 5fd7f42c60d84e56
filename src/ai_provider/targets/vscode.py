"""Claude Code for VS Code target (user settings.json)."""

from __future__ import annotations

from pathlib import Path

from ai_provider.settings import read_json, write_json
from ai_provider.targets.base import ApplyOptions, Target, vscode_user_dir

ENV_VARS_KEY = "claudeCode.environmentVariables"
SELECTED_MODEL_KEY = "claudeCode.selectedModel"


class VSCodeClaudeCodeTarget(Target):
    """Replaces the extension's environment variable list on every switch."""

    id = "vscode-claude-code"
    label = "Claude Code for VSCode (settings.json)"

    def __init__(self, settings_path: Path | None = None):
        if settings_path is None:
            user_dir = vscode_user_dir()
            settings_path = user_dir / "settings.json" if user_dir else None
        self.settings_path = settings_path

    def is_installed(self) -> bool:
        return self.settings_path is not None and self.settings_path.exists()

    def write(self, options: ApplyOptions) -> bool:
        if not self.is_installed():
            return False

        settings = read_json(self.settings_path)
        settings[ENV_VARS_KEY] = [
            {"name": name, "value": value}
            for name, value in sorted(options.env.items(), key=lambda item: item[0].lower())
        ]
        if options.model:
            settings[SELECTED_MODEL_KEY] = options.model

        write_json(self.settings_path, settings)
        return True
