"""Secrets: named records whose value is always ciphertext at rest.

The key a secret was last encrypted or decrypted with is held on the
instance but never persisted or compared.
"""
import secrets
import string

from dataclasses import asdict, dataclass, field
from datetime import datetime
from enum import IntEnum
from typing import Any, Dict, List, Optional

from secvault.crypto.aead import KEY_LENGTH, aead_decrypt, aead_encrypt
from secvault.errors import (
    CryptoError,
    InvalidKeyLengthError,
    SecretDecryptError,
    SecretEncryptError,
)
from secvault.utils.helper import Clock, IdGenerator, new_uuid, to_iso, utc_now

CHARSET = string.ascii_letters
SPECIAL_CHARSET = "_-!?=()&%"

CIPHER_ERRORS = (CryptoError, InvalidKeyLengthError)


class SecretType(IntEnum):
    GENERIC = 0
    CREDENTIAL = 1
    NOTE = 2
    FILE = 3

    def __str__(self) -> str:
        return self.name.lower()


@dataclass
class SecretOptions:
    """Fields applied verbatim when a secret is created."""
    display_name: str = ""
    type: SecretType = SecretType.GENERIC
    labels: Optional[List[str]] = None
    tags: Optional[Dict[str, str]] = None


@dataclass
class SecretUpdate:
    """Fields to change on an existing secret.

    Every field is "replace if not None, leave untouched if None". Labels
    and tags are replaced wholesale, never merged. ``value`` is the new
    plaintext; ``key`` rotates the secret onto a new 32-byte key.
    """
    display_name: Optional[str] = None
    value: Optional[bytes | str] = None
    type: Optional[SecretType] = None
    labels: Optional[List[str]] = None
    tags: Optional[Dict[str, str]] = None
    key: Optional[bytes] = field(default=None, repr=False)


@dataclass
class Secret:
    id: str = ""
    name: str = ""
    display_name: str = ""
    value: bytes = field(default=b"", repr=False)
    type: SecretType = SecretType.GENERIC
    labels: Optional[List[str]] = None
    tags: Optional[Dict[str, str]] = None
    created: Optional[datetime] = None
    updated: Optional[datetime] = None
    _key: Optional[bytes] = field(default=None, repr=False, compare=False)

    @classmethod
    def new(
        cls,
        name: str,
        value: bytes | str,
        key: bytes,
        options: Optional[SecretOptions] = None,
        *,
        clock: Clock = utc_now,
        id_generator: IdGenerator = new_uuid,
    ) -> "Secret":
        if len(key) != KEY_LENGTH:
            raise InvalidKeyLengthError()
        opts = options or SecretOptions()
        try:
            encrypted = aead_encrypt(key, _as_bytes(value))
        except CIPHER_ERRORS as err:
            raise SecretEncryptError() from err

        return cls(
            id=id_generator(),
            name=name,
            display_name=opts.display_name,
            value=encrypted,
            type=SecretType(opts.type),
            labels=opts.labels,
            tags=opts.tags,
            created=clock(),
            _key=key,
        )

    @property
    def key(self) -> Optional[bytes]:
        return self._key

    def bind_key(self, key: bytes) -> None:
        """Associate the key used by later decrypt/update calls."""
        self._key = key

    def valid(self) -> bool:
        return len(self.id) > 0 and len(self.name) > 0

    def decrypt(self, key: Optional[bytes] = None) -> bytes:
        if key is None or len(key) != KEY_LENGTH:
            key = self._key or b""
        try:
            return aead_decrypt(key, self.value)
        except CIPHER_ERRORS as err:
            raise SecretDecryptError() from err

    def apply_update(self, update: SecretUpdate, *, clock: Clock = utc_now) -> None:
        """Apply ``update`` in place.

        A new value is encrypted under the current key. A key change then
        decrypts the (possibly new) value with the previous key and
        re-encrypts it under the new one, so the caller never handles
        plaintext during rotation. Nothing is modified if a cipher call
        fails.
        """
        if update.key is not None and len(update.key) != KEY_LENGTH:
            raise InvalidKeyLengthError()

        current_key = self._key or b""
        value = self.value
        if update.value is not None:
            try:
                value = aead_encrypt(current_key, _as_bytes(update.value))
            except CIPHER_ERRORS as err:
                raise SecretEncryptError() from err

        if update.key is not None:
            try:
                plaintext = aead_decrypt(current_key, value)
            except CIPHER_ERRORS as err:
                raise SecretDecryptError() from err
            try:
                value = aead_encrypt(update.key, plaintext)
            except CIPHER_ERRORS as err:
                raise SecretEncryptError() from err
            self._key = update.key

        self.value = value
        if update.display_name is not None:
            self.display_name = update.display_name
        if update.type is not None:
            self.type = SecretType(update.type)
        if update.labels is not None:
            self.labels = list(update.labels)
        if update.tags is not None:
            self.tags = dict(update.tags)
        self.updated = clock()

    def to_dict(self) -> Dict[str, Any]:
        """Display record. The value is never included."""
        d = asdict(self)
        for k in ("value", "_key"):
            d.pop(k)
        d["type"] = str(self.type)
        d["created"] = to_iso(self.created)
        d["updated"] = to_iso(self.updated)
        return d


def generate_password(length: int, special_chars: bool = True) -> str:
    chars = CHARSET + SPECIAL_CHARSET if special_chars else CHARSET
    return "".join(secrets.choice(chars) for _ in range(length))


def _as_bytes(value: bytes | str) -> bytes:
    if isinstance(value, str):
        return value.encode("utf-8")
    return value
