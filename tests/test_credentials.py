"""
Unit tests for PayU settings and credential providers.

Run with: pytest tests/test_credentials.py -v
"""

import pytest

from models.settings import Environment, PayUSettings
from services.credentials import DatabaseCredentialProvider, EnvCredentialProvider
from services.errors import CredentialsNotConfigured, SignatureInvalid


class TestPayUSettings:
    """Tests for the settings model."""

    def test_environment_follows_sandbox_flag(self):
        """Test sandbox flag selects the environment."""
        assert PayUSettings(use_sandbox=True).environment == Environment.SANDBOX
        assert PayUSettings(use_sandbox=False).environment == Environment.PRODUCTION
        assert PayUSettings().environment == Environment.PRODUCTION

    def test_second_keys_current_then_previous(self):
        """Test keys are ordered current first."""
        settings = PayUSettings(
            second_key='new',
            previous_second_key='old',
            sandbox_second_key='sandbox'
        )

        assert settings.second_keys_for(Environment.PRODUCTION) == [b'new', b'old']
        assert settings.second_keys_for(Environment.SANDBOX) == [b'sandbox']

    def test_empty_keys_are_skipped(self):
        """Test that blank keys are never offered for verification."""
        settings = PayUSettings(second_key='', previous_second_key=None)

        assert settings.second_keys_for(Environment.PRODUCTION) == []

    def test_store_overrides_field_by_field(self):
        """Test that unset store fields inherit from the default scope."""
        defaults = PayUSettings(
            store_scope=0,
            use_sandbox=False,
            second_key='default-key',
            sandbox_second_key='default-sandbox'
        )
        store = PayUSettings(store_scope=3, use_sandbox=True, sandbox_second_key='store-sandbox')

        merged = defaults.overridden_by(store)

        assert merged.store_scope == 3
        assert merged.environment == Environment.SANDBOX
        assert merged.sandbox_second_key == 'store-sandbox'
        assert merged.second_key == 'default-key'

    def test_store_can_turn_sandbox_off(self):
        """Test that an explicit False overrides a default True."""
        merged = PayUSettings(use_sandbox=True).overridden_by(
            PayUSettings(store_scope=1, use_sandbox=False)
        )

        assert merged.environment == Environment.PRODUCTION

    def test_from_dict(self):
        """Test creating settings from a database row."""
        settings = PayUSettings.from_dict({
            'store_scope': 2,
            'use_sandbox': 1,
            'sandbox_second_key': 'abc',
            'updated_at': '2024-01-01T00:00:00'
        })

        assert settings.store_scope == 2
        assert settings.use_sandbox is True
        assert settings.sandbox_second_key == 'abc'
        assert settings.second_key is None

    def test_public_dict_masks_secrets(self):
        """Test that key material never appears in display output."""
        settings = PayUSettings(client_id='145227', client_secret='s3cret', second_key='k3y')

        public = settings.to_public_dict()

        assert public['client_id'] == '145227'
        assert public['client_secret'] == '***'
        assert public['second_key'] == '***'
        assert public['sandbox_second_key'] is None
        assert 'k3y' not in repr(settings)


class TestEnvCredentialProvider:
    """Tests for environment variable credentials."""

    async def test_default_scope(self, credentials):
        """Test reading default scope settings."""
        assert await credentials.get_environment(0) == Environment.PRODUCTION
        assert await credentials.get_secret(0, Environment.PRODUCTION) == b'prod-second-key'
        assert await credentials.get_secret(0, Environment.SANDBOX) == b'sandbox-second-key'

    async def test_store_suffix_overrides(self, environ, credentials):
        """Test that _STORE_<n> variables override the default scope."""
        environ['PAYU_USE_SANDBOX_STORE_2'] = 'true'
        environ['PAYU_SANDBOX_SECOND_KEY_STORE_2'] = 'store-2-sandbox'

        assert await credentials.get_environment(2) == Environment.SANDBOX
        assert await credentials.get_secret(2, Environment.SANDBOX) == b'store-2-sandbox'
        assert await credentials.get_secret(2, Environment.PRODUCTION) == b'prod-second-key'
        assert await credentials.get_environment(0) == Environment.PRODUCTION

    async def test_rotation_is_seen_without_new_provider(self, environ, credentials):
        """Test that key changes apply to the next lookup."""
        environ['PAYU_PREVIOUS_SECOND_KEY'] = environ['PAYU_SECOND_KEY']
        environ['PAYU_SECOND_KEY'] = 'rotated-key'

        assert await credentials.get_secrets(0, Environment.PRODUCTION) == [
            b'rotated-key', b'prod-second-key'
        ]

    async def test_missing_key_raises(self):
        """Test that an unconfigured environment is a signature failure."""
        provider = EnvCredentialProvider({})

        with pytest.raises(CredentialsNotConfigured) as exc_info:
            await provider.get_secret(5, Environment.SANDBOX)

        assert isinstance(exc_info.value, SignatureInvalid)
        assert exc_info.value.store_scope == 5
        assert exc_info.value.environment == 'sandbox'

    @pytest.mark.parametrize('value,expected', [
        ('1', Environment.SANDBOX),
        ('TRUE', Environment.SANDBOX),
        ('yes', Environment.SANDBOX),
        ('0', Environment.PRODUCTION),
        ('false', Environment.PRODUCTION),
        ('', Environment.PRODUCTION),
    ])
    async def test_sandbox_flag_values(self, value, expected):
        """Test accepted spellings of the sandbox flag."""
        provider = EnvCredentialProvider({'PAYU_USE_SANDBOX': value})

        assert await provider.get_environment(0) == expected


class TestDatabaseCredentialProvider:
    """Tests for database-backed credentials."""

    async def test_empty_table_has_no_keys(self, db):
        """Test that nothing configured means no keys."""
        provider = DatabaseCredentialProvider(db)

        assert await provider.get_environment(0) == Environment.PRODUCTION
        assert await provider.get_secrets(0, Environment.PRODUCTION) == []

    async def test_store_row_overrides_default_row(self, db):
        """Test per-store rows merged over the default scope row."""
        await db.save_payu_settings({
            'store_scope': 0,
            'use_sandbox': False,
            'second_key': 'default-key',
            'sandbox_second_key': 'default-sandbox'
        })
        await db.save_payu_settings({
            'store_scope': 4,
            'use_sandbox': True,
            'sandbox_second_key': 'store-4-sandbox'
        })
        provider = DatabaseCredentialProvider(db)

        assert await provider.get_environment(4) == Environment.SANDBOX
        assert await provider.get_secret(4, Environment.SANDBOX) == b'store-4-sandbox'
        assert await provider.get_secret(4, Environment.PRODUCTION) == b'default-key'
        assert await provider.get_secret(7, Environment.SANDBOX) == b'default-sandbox'

    async def test_saved_rotation_applies_immediately(self, db):
        """Test that a saved key is used by the next lookup."""
        provider = DatabaseCredentialProvider(db)
        await db.save_payu_settings({'store_scope': 0, 'second_key': 'first'})
        assert await provider.get_secret(0, Environment.PRODUCTION) == b'first'

        await db.save_payu_settings({
            'store_scope': 0,
            'second_key': 'second',
            'previous_second_key': 'first'
        })

        assert await provider.get_secrets(0, Environment.PRODUCTION) == [b'second', b'first']
