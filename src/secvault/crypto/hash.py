import base64
import binascii
import hmac
import os

from argon2.exceptions import HashingError
from argon2.low_level import hash_secret_raw, Type as Argon2Type
from dataclasses import dataclass, field

from secvault.errors import MalformedDataError

ARGON2_TIME_COST = 1
ARGON2_MEMORY_COST_KIB = 32 * 1024  # 32 MiB
ARGON2_PARALLELISM = 1
KEY_LENGTH = 32
SALT_LENGTH = 16

KEY_DELIMITER = b"$"


@dataclass
class Key:
    """A derived 32-byte key and the salt used to derive it."""
    value: bytes = field(default=b"", repr=False)
    salt: bytes = b""

    def valid(self) -> bool:
        return len(self.value) > 0

    def encode(self) -> bytes:
        """Encode for persistence: base64(salt)$base64(value)"""
        return base64.b64encode(self.salt) + KEY_DELIMITER + base64.b64encode(self.value)

    @staticmethod
    def decode(data: bytes | str) -> "Key":
        if isinstance(data, str):
            try:
                data = data.encode("ascii")
            except UnicodeEncodeError as err:
                raise MalformedDataError("invalid key encoding") from err
        parts = data.split(KEY_DELIMITER)
        if len(parts) != 2:
            raise MalformedDataError("invalid key encoding")
        try:
            salt = base64.b64decode(parts[0], validate=True)
            value = base64.b64decode(parts[1], validate=True)
        except binascii.Error as err:
            raise MalformedDataError("invalid key encoding") from err
        return Key(value=value, salt=salt)


def derive_key(secret: bytes | str, salt: bytes) -> bytes:
    """Argon2id(secret, salt) -> 32 bytes with the fixed cost parameters."""
    if isinstance(secret, str):
        secret = secret.encode("utf-8")
    return hash_secret_raw(
        secret=secret,
        salt=salt,
        time_cost=ARGON2_TIME_COST,
        memory_cost=ARGON2_MEMORY_COST_KIB,
        parallelism=ARGON2_PARALLELISM,
        hash_len=KEY_LENGTH,
        type=Argon2Type.ID,
    )


def derive_key_from_password(password: bytes | str) -> Key:
    salt = os.urandom(SALT_LENGTH)
    return Key(value=derive_key(password, salt), salt=salt)


def derive_random_key() -> Key:
    """Machine-generated key, not derived from anything memorable."""
    seed = os.urandom(KEY_LENGTH)
    salt = os.urandom(SALT_LENGTH)
    return Key(value=derive_key(seed, salt), salt=salt)


def compare_password_to_key(password: bytes | str, key: Key) -> bool:
    try:
        derived = derive_key(password, key.salt)
    except HashingError:
        # salt too short to ever have produced this key
        return False
    if len(derived) != len(key.value):
        return False
    return hmac.compare_digest(derived, key.value)
