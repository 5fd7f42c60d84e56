"""CLI interface for ai-provider."""

from __future__ import annotations

import functools
import json
import logging
import sys

import click
from click.shell_completion import CompletionItem, get_completion_class

from ai_provider import __version__
from ai_provider.config import (
    DEFAULT_ENDPOINT,
    DEFAULT_LITELLM_ENDPOINT,
    DEFAULT_SUBSCRIPTION_TOOL,
    PROVIDER_TYPES,
    ApiProvider,
    ClaudeProvider,
    LiteLLMProvider,
    Provider,
    ProviderOptions,
    SubscriptionProvider,
    is_valid_provider_type,
    parse_env_entry,
    parse_header_entry,
    requires_api_key,
    validate_name,
)
from ai_provider.exceptions import ProviderError, ValidationError
from ai_provider.manager import ProviderRegistry
from ai_provider.targets import DiscoveredConfig, installed_targets, target_by_id

NAME_HINT = "Invalid provider name. Use only letters, numbers, hyphens, and underscores."

PROVIDER_TYPE_LABELS = {
    "claude": "Claude API",
    "litellm": "LiteLLM",
    "subscription": "Subscription (Claude Code CLI)",
}


def styled(text: str, **kwargs) -> str:
    return click.style(text, **kwargs)


def info(msg: str) -> None:
    click.echo(f"  {msg}")


def success(msg: str) -> None:
    click.echo(f"  {styled(msg, fg='green')}")


def warn(msg: str) -> None:
    click.echo(f"  {styled(msg, fg='yellow')}", err=True)


def error(msg: str) -> None:
    click.echo(f"  {styled(msg, fg='red')}", err=True)


def heading(msg: str) -> None:
    click.echo(f"\n  {styled(msg, bold=True)}")


def fail(msg: str) -> None:
    error(msg)
    sys.exit(1)


def mask_secret(secret: str) -> str:
    if len(secret) <= 8:
        return "***"
    return secret[:8] + "***"


def preview_secret(secret: str) -> str:
    """First 8 and last 4 characters, for telling keys apart."""
    if len(secret) <= 12:
        return "***"
    return f"{secret[:8]}...{secret[-4:]}"


class ClickHandler(logging.Handler):
    """Render library log records with the CLI's own styling."""

    def emit(self, record: logging.LogRecord) -> None:
        msg = self.format(record)
        if record.levelno >= logging.ERROR:
            error(msg)
        elif record.levelno >= logging.WARNING:
            warn(f"Warning: {msg}")
        else:
            info(styled(msg, dim=True))


def setup_logging(verbose: bool) -> None:
    logger = logging.getLogger("ai_provider")
    if not any(isinstance(h, ClickHandler) for h in logger.handlers):
        logger.addHandler(ClickHandler())
    logger.setLevel(logging.DEBUG if verbose else logging.WARNING)


def _registry(ctx: click.Context) -> ProviderRegistry:
    obj = ctx.find_root().ensure_object(dict)
    if "registry" not in obj:
        obj["registry"] = ProviderRegistry()
    return obj["registry"]


def pass_registry(f):
    """Hand the command the registry and map failures to exit codes.

    Provider and config errors exit 1; a cancelled prompt exits 0.
    """

    @click.pass_context
    def new_func(ctx, *args, **kwargs):
        try:
            return ctx.invoke(f, _registry(ctx), *args, **kwargs)
        except click.Abort:
            click.echo()
            warn("Operation cancelled")
        except (ProviderError, OSError, ValueError) as e:
            fail(f"Error: {e}")

    return functools.update_wrapper(new_func, f)


def _complete_provider_names(ctx, param, incomplete):
    try:
        names = [p.name for p in _registry(ctx).list_providers()]
    except (ProviderError, OSError, ValueError):
        return []
    if param.name == "name" and ctx.command.name == "switch":
        names.append("-")
    return [CompletionItem(n) for n in names if n.startswith(incomplete)]


def _validated_name(value: str) -> str:
    if not validate_name(value):
        raise click.UsageError(NAME_HINT)
    return value


def _optional(prompt: str) -> str | None:
    value = click.prompt(f"  {prompt}", default="", show_default=False)
    return value.strip() or None


def _choose(prompt: str, options: list[tuple[str, str]], default: int = 1) -> str:
    """Numbered picker. Returns the value of the chosen option."""
    info(prompt)
    for i, (_, label) in enumerate(options, 1):
        info(f"  {i}. {label}")
    choice = click.prompt(
        "  Choice", type=click.IntRange(1, len(options)), default=default
    )
    return options[choice - 1][0]


def _collect_entries(prompt: str, parser) -> dict[str, str]:
    """Read entries one per line until a blank line."""
    entries: dict[str, str] = {}
    while True:
        entry = click.prompt(
            f"  {prompt} (blank to finish)", default="", show_default=False
        )
        if not entry:
            return entries
        try:
            key, value = parser(entry)
        except ValidationError as e:
            warn(str(e))
            continue
        entries[key] = value
        info(styled(f"  Set {key}", dim=True))


def _choose_targets(registry: ProviderRegistry) -> list[str] | None:
    """Ask which installed targets the provider applies to. None means all."""
    installed = installed_targets(registry.targets)
    if len(installed) <= 1:
        return None

    info("Apply this provider to which targets?")
    for i, t in enumerate(installed, 1):
        info(f"  {i}. {t.label}")
    while True:
        raw = click.prompt(
            "  Targets (comma-separated numbers, blank for all)",
            default="",
            show_default=False,
        )
        if not raw.strip():
            return None
        try:
            picks = {int(part) for part in raw.split(",") if part.strip()}
        except ValueError:
            warn("Enter numbers separated by commas.")
            continue
        if not picks or any(p < 1 or p > len(installed) for p in picks):
            warn(f"Choose numbers between 1 and {len(installed)}.")
            continue
        if len(picks) == len(installed):
            return None
        return [installed[p - 1].id for p in sorted(picks)]


def _print_envs(envs: dict[str, str], indent: str = "  ") -> None:
    for key, value in envs.items():
        info(f"{indent}{styled(key, fg='cyan')}={value}")


@click.group()
@click.version_option(version=__version__, prog_name="ai-provider")
@click.option("--verbose", "-v", is_flag=True, help="Verbose output.")
@click.pass_context
def cli(ctx: click.Context, verbose: bool) -> None:
    """Manage multiple AI providers and switch the active one."""
    ctx.ensure_object(dict)
    ctx.obj["verbose"] = verbose
    setup_logging(verbose)


@cli.command()
@click.option("-n", "--name", default=None, help="Provider name.")
@click.option(
    "-t",
    "--type",
    "provider_type",
    default=None,
    help="Provider type (claude, litellm, subscription).",
)
@pass_registry
def add(registry: ProviderRegistry, name: str | None, provider_type: str | None) -> None:
    """Add a new AI provider."""
    click.echo()
    if name is None:
        name = click.prompt("  Provider name", value_proc=_validated_name)
    elif not validate_name(name):
        fail(NAME_HINT)

    if provider_type is None:
        provider_type = _choose("Provider type:", list(PROVIDER_TYPE_LABELS.items()))
    elif not is_valid_provider_type(provider_type):
        fail(
            f"Invalid provider type: {provider_type}. "
            f"Must be one of: {', '.join(PROVIDER_TYPES)}"
        )

    secret = None
    if provider_type == "subscription":
        tool = click.prompt("  Tool name", default=DEFAULT_SUBSCRIPTION_TOOL)
    else:
        default_endpoint = (
            DEFAULT_ENDPOINT if provider_type == "claude" else DEFAULT_LITELLM_ENDPOINT
        )
        label = "API endpoint" if provider_type == "claude" else "LiteLLM endpoint"
        endpoint = click.prompt(f"  {label}", default=default_endpoint)
        secret = click.prompt("  API key", hide_input=True)

    model = _optional("Primary model (e.g. claude-opus-4-6), blank to skip")
    small_model = _optional("Small/haiku model, blank to skip")

    options = ProviderOptions(
        always_thinking=True if click.confirm("  Enable always-thinking mode?", default=False) else None,
        disable_telemetry=True if click.confirm("  Disable telemetry?", default=False) else None,
        disable_betas=True if click.confirm("  Disable experimental betas?", default=False) else None,
    )

    headers: dict[str, str] = {}
    if provider_type != "subscription" and click.confirm(
        "  Add custom HTTP headers (e.g. X-Proxy-Auth)?", default=False
    ):
        info(styled("Enter Header-Name: value pairs, one per line.", dim=True))
        headers = _collect_entries("Header-Name: value", parse_header_entry)

    custom_envs: dict[str, str] = {}
    if click.confirm("  Add custom environment variables?", default=False):
        info(styled("Enter KEY=VALUE pairs, one per line.", dim=True))
        custom_envs = _collect_entries("KEY=VALUE", parse_env_entry)

    targets = _choose_targets(registry)

    common = dict(
        name=name,
        model=model,
        small_model=small_model,
        options=options,
        custom_envs=custom_envs,
        targets=targets,
    )
    provider: Provider
    if provider_type == "claude":
        provider = ClaudeProvider(endpoint=endpoint, headers=headers, **common)
    elif provider_type == "litellm":
        provider = LiteLLMProvider(endpoint=endpoint, headers=headers, **common)
    else:
        provider = SubscriptionProvider(tool=tool, **common)

    registry.add(provider, secret)
    click.echo()
    success(f"Provider '{name}' added successfully")
    click.echo()


@cli.command("list")
@click.option("--names-only", is_flag=True, help="Print provider names only.")
@pass_registry
def list_cmd(registry: ProviderRegistry, names_only: bool) -> None:
    """List all configured providers."""
    providers = registry.list_providers()
    active = registry.active_name

    if names_only:
        for p in providers:
            click.echo(p.name)
        return

    if not providers:
        warn("No providers configured yet.")
        info(styled('Use "aic add" to add a provider.', dim=True))
        return

    heading("Configured providers")
    click.echo()
    for p in providers:
        if p.name == active:
            info(f"{styled('●', fg='green')} {styled(p.name, fg='green', bold=True)}")
        else:
            info(f"  {p.name}")
        info(f"    Type: {p.type}")
        if isinstance(p, ApiProvider):
            info(f"    Endpoint: {p.endpoint}")
            info(f"    API Key: {styled('stored in keychain', dim=True)}")
        elif isinstance(p, SubscriptionProvider):
            info(f"    Tool: {p.tool}")
        if p.custom_envs:
            info("    Custom envs:")
            _print_envs(p.custom_envs, indent="      ")
        click.echo()

    if active:
        info(styled(f"Active provider: {active}", dim=True))


@cli.command()
@click.argument("name", shell_complete=_complete_provider_names)
@click.option("--yes", "-y", is_flag=True, help="Don't ask for confirmation.")
@pass_registry
def remove(registry: ProviderRegistry, name: str, yes: bool) -> None:
    """Remove a provider."""
    registry.get(name)

    if name == registry.active_name:
        warn(f"'{name}' is currently the active provider.")
        warn("If you remove it, another provider will be set as active.")

    if not yes and not click.confirm(
        f"  Are you sure you want to remove provider '{name}'?", default=False
    ):
        warn("Operation cancelled")
        return

    registry.remove(name)
    success(f"Provider '{name}' removed successfully")


@cli.command()
@click.argument("name", required=False, shell_complete=_complete_provider_names)
@pass_registry
def switch(registry: ProviderRegistry, name: str | None) -> None:
    """Switch to a different provider ('-' for the previous one)."""
    if name == "-":
        name, updated = registry.set_active_previous()
    else:
        if not name:
            providers = registry.list_providers()
            if not providers:
                info(styled('Use "aic add" to add a provider.', dim=True))
                fail("Error: No providers configured")
            active = registry.active_name
            options = [
                (p.name, f"{p.name} {styled('(active)', fg='green')}" if p.name == active else p.name)
                for p in providers
            ]
            name = _choose("Select a provider:", options)
        updated = registry.set_active(name)

    success(f"Switched to '{name}'")
    for label in updated:
        info(styled(f"  Updated: {label}", dim=True))


@cli.command()
@click.option("--json", "as_json", is_flag=True, help="Output as JSON.")
@click.option("--env", "as_env", is_flag=True, help="Output as environment variables.")
@pass_registry
def current(registry: ProviderRegistry, as_json: bool, as_env: bool) -> None:
    """Show the current active provider."""
    active = registry.get_active()

    if active is None:
        if as_json:
            click.echo(json.dumps({"error": "No active provider configured"}, indent=2))
        else:
            warn("No active provider configured.")
            info(styled('Use "aic add" to add a provider.', dim=True))
        return

    provider, secret = active.provider, active.secret

    if as_json:
        output: dict[str, str] = {"name": provider.name, "type": provider.type}
        if isinstance(provider, ApiProvider):
            output["endpoint"] = provider.endpoint
            if secret:
                output["apiKey"] = secret
        elif isinstance(provider, SubscriptionProvider):
            output["tool"] = provider.tool
        click.echo(json.dumps(output, indent=2))
        return

    if as_env:
        if isinstance(provider, ApiProvider):
            if secret:
                click.echo(f'export ANTHROPIC_AUTH_TOKEN="{secret}"')
            if isinstance(provider, LiteLLMProvider):
                click.echo(f'export LITELLM_ENDPOINT="{provider.endpoint}"')
            else:
                click.echo(f'export ANTHROPIC_BASE_URL="{provider.endpoint}"')
        elif isinstance(provider, SubscriptionProvider):
            click.echo('export AI_PROVIDER_TYPE="subscription"')
            click.echo(f'export AI_PROVIDER_TOOL="{provider.tool}"')
        return

    heading("Active provider")
    click.echo()
    info(f"Name: {styled(provider.name, fg='green')}")
    info(f"Type: {provider.type}")
    if isinstance(provider, ApiProvider):
        info(f"Endpoint: {provider.endpoint}")
        if secret:
            info(f"API Key: {preview_secret(secret)} {styled('(masked)', dim=True)}")
        else:
            info(f"API Key: {styled('not found in keychain', fg='red')}")
    elif isinstance(provider, SubscriptionProvider):
        info(f"Tool: {provider.tool}")
    click.echo()


@cli.command()
@click.argument("name", shell_complete=_complete_provider_names)
@click.argument("target", required=False)
@click.option("--set", "set_entries", multiple=True, metavar="KEY=VALUE", help="Set a variable.")
@click.option("--unset", "unset_keys", multiple=True, metavar="KEY", help="Remove a variable.")
@pass_registry
def env(
    registry: ProviderRegistry,
    name: str,
    target: str | None,
    set_entries: tuple[str, ...],
    unset_keys: tuple[str, ...],
) -> None:
    """Manage custom environment variables for a provider.

    Without TARGET the variables apply to all targets; with TARGET they
    override the global ones for that target only.
    """
    registry.get(name)
    if target and target_by_id(registry.targets, target) is None:
        known = ", ".join(t.id for t in registry.targets)
        fail(f"Unknown target '{target}'. Known targets: {known}")

    if set_entries or unset_keys:
        for entry in set_entries:
            key, value = parse_env_entry(entry)
            registry.set_env(name, key, value, target)
            success(f"Set {key}")
        for key in unset_keys:
            if registry.delete_env(name, key, target):
                success(f"Removed {key}")
            else:
                warn(f"{key} is not set")
        return

    scope = f"target '{target}'" if target else "all targets (global)"
    while True:
        provider = registry.get(name)
        envs = provider.target_envs.get(target, {}) if target else provider.custom_envs

        heading(f"Custom envs for '{name}' ({scope})")
        if envs:
            _print_envs(envs)
        else:
            info(styled("  (none)", dim=True))
        click.echo()

        action = _choose(
            "Action:",
            [
                ("add", "Add / update a variable"),
                ("remove", "Remove a variable"),
                ("done", "Done"),
            ],
            default=3,
        )
        if action == "done":
            return

        if action == "add":
            entry = click.prompt("  KEY=VALUE", default="", show_default=False)
            if not entry:
                continue
            try:
                key, value = parse_env_entry(entry)
            except ValidationError as e:
                warn(str(e))
                continue
            registry.set_env(name, key, value, target)
            success(f"Set {key}")
        else:
            if not envs:
                warn("No custom envs to remove.")
                continue
            key = _choose("Select variable to remove:", [(k, k) for k in envs])
            registry.delete_env(name, key, target)
            success(f"Removed {key}")


@cli.command()
@click.argument("name", required=False, shell_complete=_complete_provider_names)
@click.option("--reveal", is_flag=True, help="Show the full API key.")
@pass_registry
def show(registry: ProviderRegistry, name: str | None, reveal: bool) -> None:
    """Show provider details (defaults to the active provider)."""
    active = registry.active_name
    name = name or active
    if not name:
        fail("Error: No active provider. Specify a provider name or switch to one first.")

    provider = registry.get(name)
    suffix = styled(" (active)", fg="green") if provider.name == active else ""
    heading(f"Provider: {styled(provider.name, fg='cyan')}{suffix}")
    click.echo()
    info(f"Type:     {provider.type}")

    if isinstance(provider, ApiProvider):
        secret = registry.get_secret(provider.name)
        if secret:
            info(f"API Key:  {secret if reveal else mask_secret(secret)}")
        else:
            info(f"API Key:  {styled('not found in keychain', fg='yellow')}")
        info(f"Endpoint: {provider.endpoint}")
    elif isinstance(provider, SubscriptionProvider):
        info(f"Tool:     {provider.tool}")

    if provider.model:
        info(f"Model:    {provider.model}")
    if provider.small_model:
        info(f"Small model: {provider.small_model}")

    opts = provider.options
    if not opts.is_empty():
        info("Options:")
        if opts.always_thinking is not None:
            info(f"  Always thinking: {str(opts.always_thinking).lower()}")
        if opts.disable_telemetry:
            info("  Disable telemetry: true")
        if opts.disable_betas:
            info("  Disable betas: true")

    if isinstance(provider, ApiProvider) and provider.headers:
        info("Headers:")
        for key, value in provider.headers.items():
            info(f"  {styled(key, fg='cyan')}: {value}")

    if provider.custom_envs:
        info("Custom envs (all targets):")
        _print_envs(provider.custom_envs)

    if provider.target_envs:
        info("Per-target envs:")
        for target_id, envs in provider.target_envs.items():
            target = target_by_id(registry.targets, target_id)
            info(f"  {styled(target.label if target else target_id, bold=True)}:")
            _print_envs(envs, indent="    ")

    if provider.targets:
        labels = []
        for target_id in provider.targets:
            target = target_by_id(registry.targets, target_id)
            labels.append(target.label if target else target_id)
        info(f"Targets:  {', '.join(labels)}")

    click.echo()
    if not reveal and requires_api_key(provider):
        info(styled("Use --reveal to show the full API key", dim=True))


def _print_discovered(cfg: DiscoveredConfig) -> None:
    if cfg.secret:
        info(f"API Key:  {mask_secret(cfg.secret)}")
    else:
        info(f"API Key:  {styled('none (subscription mode)', fg='yellow')}")
    info(f"Endpoint: {cfg.endpoint or DEFAULT_ENDPOINT}")
    if cfg.model:
        info(f"Model:    {cfg.model}")
    if cfg.small_model:
        info(f"Small model: {cfg.small_model}")
    if cfg.always_thinking is not None:
        info(f"Always thinking: {str(cfg.always_thinking).lower()}")
    if cfg.disable_telemetry:
        info("Disable telemetry: true")
    if cfg.disable_betas:
        info("Disable betas: true")
    if cfg.custom_headers:
        info("Custom headers:")
        for key, value in cfg.custom_headers.items():
            info(f"  {styled(key, fg='cyan')}: {value}")
    if cfg.custom_envs:
        info("Custom envs:")
        _print_envs(cfg.custom_envs)


@cli.command()
@click.option("-n", "--name", default=None, help="Name for the imported provider.")
@click.option("--yes", "-y", is_flag=True, help="Don't ask for confirmation.")
@pass_registry
def discover(registry: ProviderRegistry, name: str | None, yes: bool) -> None:
    """Import a provider from an AI tool's existing settings."""
    sources = [t for t in registry.targets if t.discoverable and t.is_installed()]
    if not sources:
        checked = ", ".join(t.label for t in registry.targets if t.discoverable)
        info(styled(f"Checked: {checked}", dim=True))
        fail("Error: No supported AI tools detected on this system.")

    if len(sources) == 1:
        source = sources[0]
        info(styled(f"Discovering from: {source.label}", dim=True))
    else:
        picked = _choose(
            "Import settings from which tool?", [(t.id, t.label) for t in sources]
        )
        source = target_by_id(sources, picked)

    cfg = source.read()
    if cfg is None:
        fail(f"Error: Could not read settings from {source.label}")

    heading(f"Discovered settings from {source.label}")
    click.echo()
    _print_discovered(cfg)
    click.echo()

    if name is None:
        name = click.prompt(
            "  Save as provider name", default="discovered", value_proc=_validated_name
        )
    elif not validate_name(name):
        fail(NAME_HINT)

    if not yes and not click.confirm(
        f"  Import as provider '{name}' and set as active?", default=True
    ):
        warn("Operation cancelled")
        return

    updated = registry.import_discovered(name, cfg)
    click.echo()
    success(f"Provider '{name}' imported and set as active")
    for label in updated:
        info(styled(f"  Updated: {label}", dim=True))


@cli.command()
@click.argument("shell", type=click.Choice(["bash", "zsh", "fish"]))
@click.pass_context
def completion(ctx: click.Context, shell: str) -> None:
    """Print the shell completion script.

    \b
    Example:
      eval "$(aic completion bash)"
    """
    comp_cls = get_completion_class(shell)
    comp = comp_cls(ctx.find_root().command, {}, "aic", "_AIC_COMPLETE")
    click.echo(comp.source())
