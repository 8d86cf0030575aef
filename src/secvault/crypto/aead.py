import os

from cryptography.exceptions import InvalidTag
from cryptography.hazmat.primitives.ciphers.aead import AESGCM

from secvault.errors import InvalidKeyError, InvalidKeyLengthError, MalformedDataError

KEY_LENGTH = 32  # AES-256
NONCE_SIZE = 12  # GCM standard nonce


def aead_encrypt(key: bytes, plaintext: bytes, aad: bytes | None = None) -> bytes:
    """Encrypt with AES-256-GCM under a fresh random nonce.

    Output layout: nonce || ciphertext+tag
    """
    if len(key) != KEY_LENGTH:
        raise InvalidKeyLengthError()
    nonce = os.urandom(NONCE_SIZE)
    aesgcm = AESGCM(key)
    ct = aesgcm.encrypt(nonce, plaintext, aad)
    return nonce + ct


def aead_decrypt(key: bytes, blob: bytes, aad: bytes | None = None) -> bytes:
    if len(key) != KEY_LENGTH:
        raise InvalidKeyLengthError()
    if len(blob) < NONCE_SIZE:
        raise MalformedDataError()
    nonce, ct = blob[:NONCE_SIZE], blob[NONCE_SIZE:]
    aesgcm = AESGCM(key)
    try:
        return aesgcm.decrypt(nonce, ct, aad)
    except InvalidTag:
        # Wrong key and corrupted data are indistinguishable on purpose.
        raise InvalidKeyError() from None
