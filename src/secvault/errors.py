"""Exceptions raised by secvault.

Every layer wraps the underlying cause with ``raise ... from err``; the
original error is available on ``__cause__``.
"""


class SecVaultError(Exception):
    """Base class for all secvault errors."""


# Validation

class ValidationError(SecVaultError, ValueError):
    """Raised when an argument is rejected before any work is done."""


class InvalidKeyLengthError(ValidationError):
    """Raised when a key is not exactly 32 bytes."""

    def __init__(self, message: str = "invalid key length, must be 32 bytes"):
        super().__init__(message)


class ProfileIdError(ValidationError):
    """Raised when no profile ID is provided."""

    def __init__(self, message: str = "a profile ID must be provided"):
        super().__init__(message)


class StorageRequiredError(ValidationError):
    """Raised when a handler is created without a storage backend."""

    def __init__(self, message: str = "a storage must be provided"):
        super().__init__(message)


# Cryptographic

class CryptoError(SecVaultError):
    """Base class for encryption and decryption failures."""


class InvalidKeyError(CryptoError):
    """Wrong key or tampered data. Deliberately does not say which."""

    def __init__(self, message: str = "invalid key"):
        super().__init__(message)


class MalformedDataError(CryptoError):
    """Raised when data is too short or cannot be decoded."""

    def __init__(self, message: str = "malformed data"):
        super().__init__(message)


class SecretEncryptError(CryptoError):
    def __init__(self, message: str = "encrypting secret"):
        super().__init__(message)


class SecretDecryptError(CryptoError):
    def __init__(self, message: str = "decrypting secret"):
        super().__init__(message)


# Lookup and conflict

class SecretNotFoundError(SecVaultError):
    def __init__(self, message: str = "a secret with that identifier cannot be found"):
        super().__init__(message)


class AlreadyExistsError(SecVaultError):
    def __init__(self, message: str = "a secret with that ID or name already exists"):
        super().__init__(message)


# Storage and pipeline context

class StorageError(SecVaultError):
    """Raised by storage backends for I/O failures."""


class SourceNotFoundError(StorageError):
    """Raised by ``Storage.load`` when nothing has been persisted yet."""

    def __init__(self, message: str = "data source could not be found"):
        super().__init__(message)


class LoadCollectionError(SecVaultError):
    def __init__(self, message: str = "load collection failed"):
        super().__init__(message)


class SaveCollectionError(SecVaultError):
    def __init__(self, message: str = "save collection failed"):
        super().__init__(message)
