"""API key storage in the OS keychain."""

from __future__ import annotations

import keyring
from keyring.errors import KeyringError, PasswordDeleteError

from ai_provider.exceptions import CredentialError

KEYCHAIN_SERVICE = "ai-provider-cli"


class CredentialStore:
    """Secrets keyed by provider name within a fixed keychain service."""

    def __init__(self, service: str = KEYCHAIN_SERVICE):
        self.service = service

    def set(self, name: str, secret: str) -> None:
        try:
            keyring.set_password(self.service, name, secret)
        except KeyringError as e:
            raise CredentialError(f"Could not store API key for '{name}': {e}") from e

    def get(self, name: str) -> str | None:
        try:
            return keyring.get_password(self.service, name)
        except KeyringError as e:
            raise CredentialError(f"Could not read API key for '{name}': {e}") from e

    def delete(self, name: str) -> bool:
        """Delete a stored secret. Returns False if there was none."""
        try:
            keyring.delete_password(self.service, name)
        except PasswordDeleteError:
            return False
        except KeyringError as e:
            raise CredentialError(f"Could not delete API key for '{name}': {e}") from e
        return True
