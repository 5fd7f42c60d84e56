"""Core propagation engine: canonical env map, target selection, apply loop."""

from __future__ import annotations

import json
import logging

from ai_provider.config import ApiProvider, Provider
from ai_provider.targets import ApplyOptions, Target, installed_targets

logger = logging.getLogger(__name__)

# Only this target gets the previous keys, so it can drop what it no longer needs.
PRIMARY_TARGET_ID = "claude-code"


def build_env(provider: Provider, secret: str | None = None) -> tuple[dict[str, str], list[str]]:
    """Flatten a provider into the env vars every target consumes.

    Returns (env, applied_keys) where applied_keys lists the keys in the
    order they were set.
    """
    env: dict[str, str] = {}
    applied: list[str] = []

    def put(key: str, value: str) -> None:
        env[key] = value
        if key not in applied:
            applied.append(key)

    if isinstance(provider, ApiProvider):
        if secret:
            put("ANTHROPIC_AUTH_TOKEN", secret)
        # litellm shares the Anthropic variable; downstream tools only read that one.
        put("ANTHROPIC_BASE_URL", provider.endpoint)
    # Subscription providers set no auth vars; previous_keys cleanup removes old ones.

    if provider.model:
        put("ANTHROPIC_MODEL", provider.model)
    if provider.small_model:
        put("ANTHROPIC_DEFAULT_HAIKU_MODEL", provider.small_model)
    if provider.options.disable_telemetry:
        put("DISABLE_TELEMETRY", "1")
    if provider.options.disable_betas:
        put("CLAUDE_CODE_DISABLE_EXPERIMENTAL_BETAS", "1")

    if isinstance(provider, ApiProvider) and provider.headers:
        put("ANTHROPIC_CUSTOM_HEADERS", json.dumps(provider.headers))

    for key, value in provider.custom_envs.items():
        put(key, value)

    return env, applied


def select_targets(targets: list[Target], provider: Provider) -> list[Target]:
    """Installed targets, restricted to provider.targets when that is non-empty."""
    selected = installed_targets(targets)
    if provider.targets:
        selected = [t for t in selected if t.id in provider.targets]
    return selected


def target_env(env: dict[str, str], provider: Provider, target_id: str) -> dict[str, str]:
    """Overlay the provider's per-target env vars on the canonical env."""
    merged = dict(env)
    merged.update(provider.target_envs.get(target_id, {}))
    return merged


def apply_provider(
    provider: Provider,
    env: dict[str, str],
    targets: list[Target],
    previous_keys: list[str] | None = None,
) -> list[str]:
    """Write the provider into each selected target.

    Returns labels of the targets actually updated, in registry order. A
    target that fails only produces a warning.
    """
    updated = []
    for target in select_targets(targets, provider):
        options = ApplyOptions(
            env=target_env(env, provider, target.id),
            model=provider.model,
            always_thinking=provider.options.always_thinking,
            previous_keys=previous_keys if target.id == PRIMARY_TARGET_ID else None,
        )
        logger.debug("Applying '%s' to %s", provider.name, target.label)
        if target.apply(options):
            updated.append(target.label)
        else:
            logger.debug("Skipped %s", target.label)
    return updated
