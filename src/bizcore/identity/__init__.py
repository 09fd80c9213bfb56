"""Identity: users, password hashing and bearer sessions."""

from bizcore.identity.protocol import IdentityProvider, IssuedSession
from bizcore.identity.provider import DatabaseIdentityProvider, hash_password

__all__ = [
    "DatabaseIdentityProvider",
    "IdentityProvider",
    "IssuedSession",
    "hash_password",
]
