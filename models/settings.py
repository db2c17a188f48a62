"""
PayU store settings model.

Mirrors the per-store configuration saved by the admin side: the sandbox
toggle, the OAuth client pairs and the second keys used to sign notifications.
"""

from dataclasses import dataclass, fields
from enum import Enum
from typing import Any, Dict, List, Optional


# Scope whose values apply to every store without its own override
DEFAULT_STORE_SCOPE = 0


class Environment(str, Enum):
    """PayU credential/endpoint partition."""
    SANDBOX = "sandbox"
    PRODUCTION = "production"


@dataclass
class PayUSettings:
    """
    PayU settings for one store scope.

    Attributes:
        store_scope: Store identifier (0 = default scope)
        use_sandbox: Whether the store talks to the PayU sandbox
        sandbox_client_id: OAuth client id for the sandbox
        sandbox_client_secret: OAuth client secret for the sandbox
        sandbox_second_key: Signature key for sandbox notifications
        client_id: OAuth client id for production
        client_secret: OAuth client secret for production
        second_key: Signature key for production notifications
        previous_sandbox_second_key: Sandbox key still accepted during rotation
        previous_second_key: Production key still accepted during rotation
    """

    store_scope: int = DEFAULT_STORE_SCOPE
    use_sandbox: Optional[bool] = None
    sandbox_client_id: Optional[str] = None
    sandbox_client_secret: Optional[str] = None
    sandbox_second_key: Optional[str] = None
    client_id: Optional[str] = None
    client_secret: Optional[str] = None
    second_key: Optional[str] = None
    previous_sandbox_second_key: Optional[str] = None
    previous_second_key: Optional[str] = None

    @property
    def environment(self) -> Environment:
        return Environment.SANDBOX if self.use_sandbox else Environment.PRODUCTION

    def second_keys_for(self, environment: Environment) -> List[bytes]:
        """
        Get the signature keys accepted for an environment.

        Args:
            environment: Sandbox or production

        Returns:
            Current key first, then the previous key if one is set
        """
        if environment == Environment.SANDBOX:
            candidates = [self.sandbox_second_key, self.previous_sandbox_second_key]
        else:
            candidates = [self.second_key, self.previous_second_key]

        return [key.encode('utf-8') for key in candidates if key]

    def overridden_by(self, store: 'PayUSettings') -> 'PayUSettings':
        """
        Merge a store's own settings over these (default scope) settings.

        Fields the store leaves as None inherit the value from self.
        """
        merged = {}
        for f in fields(self):
            value = getattr(store, f.name)
            merged[f.name] = value if value is not None else getattr(self, f.name)
        merged['store_scope'] = store.store_scope
        return PayUSettings(**merged)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'PayUSettings':
        """
        Create PayUSettings from dictionary (e.g., database row).

        Args:
            data: Dictionary with settings columns

        Returns:
            PayUSettings instance
        """
        use_sandbox = data.get('use_sandbox')
        return cls(
            store_scope=int(data.get('store_scope', DEFAULT_STORE_SCOPE)),
            use_sandbox=bool(use_sandbox) if use_sandbox is not None else None,
            sandbox_client_id=data.get('sandbox_client_id'),
            sandbox_client_secret=data.get('sandbox_client_secret'),
            sandbox_second_key=data.get('sandbox_second_key'),
            client_id=data.get('client_id'),
            client_secret=data.get('client_secret'),
            second_key=data.get('second_key'),
            previous_sandbox_second_key=data.get('previous_sandbox_second_key'),
            previous_second_key=data.get('previous_second_key')
        )

    def to_dict(self) -> Dict[str, Any]:
        """Convert PayUSettings to dictionary."""
        return {f.name: getattr(self, f.name) for f in fields(self)}

    def to_public_dict(self) -> Dict[str, Any]:
        """
        Convert to dictionary for display (masks secrets).

        Returns:
            Dictionary representation without key material
        """
        data = self.to_dict()
        for name in ('sandbox_client_secret', 'sandbox_second_key', 'client_secret',
                     'second_key', 'previous_sandbox_second_key', 'previous_second_key'):
            data[name] = '***' if data[name] else None
        return data

    def __repr__(self) -> str:
        return (
            f"PayUSettings(store={self.store_scope}, "
            f"env={self.environment.value})"
        )
