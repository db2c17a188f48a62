"""
PayU Credential Providers.

Supply the second keys used to verify notification signatures, scoped by
store and environment. Providers read the current configuration on every
call so a rotated key takes effect without a restart.
"""

import logging
import os
from abc import ABC, abstractmethod
from typing import List, Mapping, Optional

from database.db import Database
from models.settings import DEFAULT_STORE_SCOPE, Environment, PayUSettings
from .errors import CredentialsNotConfigured

logger = logging.getLogger(__name__)


class CredentialProvider(ABC):
    """Read interface over per-store PayU settings."""

    @abstractmethod
    async def load_settings(self, store_scope: int) -> PayUSettings:
        """
        Load the effective settings for a store.

        Args:
            store_scope: Store identifier (0 = default scope)

        Returns:
            Store settings merged over the default scope
        """

    async def get_environment(self, store_scope: int) -> Environment:
        """Get the environment a store is configured for."""
        settings = await self.load_settings(store_scope)
        return settings.environment

    async def get_secrets(self, store_scope: int, environment: Environment) -> List[bytes]:
        """
        Get every second key currently accepted for a store and environment.

        Returns:
            Current key first, then the previous key during rotation
        """
        settings = await self.load_settings(store_scope)
        return settings.second_keys_for(environment)

    async def get_secret(self, store_scope: int, environment: Environment) -> bytes:
        """
        Get the current second key for a store and environment.

        Raises:
            CredentialsNotConfigured: If no key is configured
        """
        secrets = await self.get_secrets(store_scope, environment)
        if not secrets:
            raise CredentialsNotConfigured(store_scope, environment.value)
        return secrets[0]


def _env_flag(value: Optional[str]) -> Optional[bool]:
    if value is None or not value.strip():
        return None
    return value.strip().lower() in ('1', 'true', 'yes', 'on')


class EnvCredentialProvider(CredentialProvider):
    """
    Credentials from environment variables.

    Default scope reads PAYU_USE_SANDBOX, PAYU_SECOND_KEY, PAYU_SANDBOX_SECOND_KEY,
    PAYU_PREVIOUS_SECOND_KEY and PAYU_PREVIOUS_SANDBOX_SECOND_KEY. A store
    overrides any of them with a _STORE_<n> suffix, e.g. PAYU_SECOND_KEY_STORE_2.
    """

    def __init__(self, environ: Optional[Mapping[str, str]] = None):
        # Keep a reference, not a copy, so later changes are visible
        self._environ = environ if environ is not None else os.environ

    def _settings_for(self, store_scope: int, suffix: str) -> PayUSettings:
        env = self._environ
        return PayUSettings(
            store_scope=store_scope,
            use_sandbox=_env_flag(env.get(f'PAYU_USE_SANDBOX{suffix}')),
            sandbox_client_id=env.get(f'PAYU_SANDBOX_CLIENT_ID{suffix}'),
            sandbox_client_secret=env.get(f'PAYU_SANDBOX_CLIENT_SECRET{suffix}'),
            sandbox_second_key=env.get(f'PAYU_SANDBOX_SECOND_KEY{suffix}'),
            client_id=env.get(f'PAYU_CLIENT_ID{suffix}'),
            client_secret=env.get(f'PAYU_CLIENT_SECRET{suffix}'),
            second_key=env.get(f'PAYU_SECOND_KEY{suffix}'),
            previous_sandbox_second_key=env.get(f'PAYU_PREVIOUS_SANDBOX_SECOND_KEY{suffix}'),
            previous_second_key=env.get(f'PAYU_PREVIOUS_SECOND_KEY{suffix}')
        )

    async def load_settings(self, store_scope: int) -> PayUSettings:
        defaults = self._settings_for(DEFAULT_STORE_SCOPE, '')
        if store_scope == DEFAULT_STORE_SCOPE:
            return defaults
        return defaults.overridden_by(
            self._settings_for(store_scope, f'_STORE_{store_scope}')
        )


class DatabaseCredentialProvider(CredentialProvider):
    """Credentials from the payu_settings table, read per call."""

    def __init__(self, db: Database):
        self.db = db

    async def load_settings(self, store_scope: int) -> PayUSettings:
        default_row = await self.db.get_payu_settings(DEFAULT_STORE_SCOPE)
        defaults = (
            PayUSettings.from_dict(default_row) if default_row
            else PayUSettings(store_scope=DEFAULT_STORE_SCOPE)
        )

        if store_scope == DEFAULT_STORE_SCOPE:
            return defaults

        store_row = await self.db.get_payu_settings(store_scope)
        if not store_row:
            logger.debug(f"Store {store_scope} has no PayU settings, using default scope")
            return defaults.overridden_by(PayUSettings(store_scope=store_scope))

        return defaults.overridden_by(PayUSettings.from_dict(store_row))
