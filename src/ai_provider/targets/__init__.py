"""Target adapters for writing providers into AI tool configs."""

from __future__ import annotations

from pathlib import Path

from ai_provider.targets.base import (
    ApplyOptions,
    DiscoveredConfig,
    Target,
    extension_storage_root,
    vscode_user_dir,
)
from ai_provider.targets.claude_code import ClaudeCodeTarget
from ai_provider.targets.cline import ClineTarget
from ai_provider.targets.roo_code import RooCodeTarget
from ai_provider.targets.vscode import VSCodeClaudeCodeTarget

__all__ = [
    "ApplyOptions",
    "DiscoveredConfig",
    "Target",
    "ClaudeCodeTarget",
    "ClineTarget",
    "RooCodeTarget",
    "VSCodeClaudeCodeTarget",
    "create_targets",
    "installed_targets",
    "target_by_id",
]


def create_targets(home: Path | None = None) -> list[Target]:
    """Factory: the fixed, ordered target registry.

    With home set, every tool path is resolved beneath it (Linux layout
    for the VS Code ones).
    """
    if home is None:
        return [
            ClaudeCodeTarget(),
            VSCodeClaudeCodeTarget(),
            RooCodeTarget(),
            ClineTarget(),
        ]

    user_dir = vscode_user_dir(home=home, platform="linux")
    storage_root = extension_storage_root(home=home, platform="linux")
    return [
        ClaudeCodeTarget(home / ".claude" / "settings.json"),
        VSCodeClaudeCodeTarget(user_dir / "settings.json"),
        RooCodeTarget(storage_root),
        ClineTarget(storage_root),
    ]


def installed_targets(targets: list[Target]) -> list[Target]:
    return [t for t in targets if t.is_installed()]


def target_by_id(targets: list[Target], target_id: str) -> Target | None:
    for t in targets:
        if t.id == target_id:
            return t
    return None
