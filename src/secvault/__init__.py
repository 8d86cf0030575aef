"""Local encrypted secret store.

Secrets are encrypted individually under a value key, and the whole
collection is encrypted again under a storage key before it reaches a
storage backend.
"""
from secvault.crypto.hash import (
    Key,
    compare_password_to_key,
    derive_key_from_password,
    derive_random_key,
)
from secvault.storage.vault import FileStorage, Storage
from secvault.vault.collection import Collection
from secvault.vault.handler import Handler
from secvault.vault.secret import Secret, SecretOptions, SecretType, SecretUpdate

__version__ = "0.1.0"

__all__ = [
    "Collection",
    "FileStorage",
    "Handler",
    "Key",
    "Secret",
    "SecretOptions",
    "SecretType",
    "SecretUpdate",
    "Storage",
    "compare_password_to_key",
    "derive_key_from_password",
    "derive_random_key",
]
