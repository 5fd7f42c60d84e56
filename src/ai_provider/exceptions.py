"""ai-provider exception hierarchy.

Every error raised on purpose by the registry inherits from ProviderError,
so the CLI can report them uniformly without swallowing unrelated failures.
"""


class ProviderError(Exception):
    """Base exception for all ai-provider errors."""


class NotFoundError(ProviderError):
    """Raised when a provider or target name is unknown."""


class AlreadyExistsError(ProviderError):
    """Raised when adding a provider whose name is already taken."""


class ValidationError(ProviderError):
    """Raised for bad provider names and malformed KEY=VALUE or header entries."""


class CredentialError(ProviderError):
    """Raised when the OS keychain cannot be reached."""
