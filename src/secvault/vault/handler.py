"""Handler: binds one Collection to its storage backends and keys.

Two independent keys are in play:

- ``storage_key`` encrypts the whole encoded collection at rest.
- ``key`` encrypts each secret's value.

Rotating one never requires re-deriving the other, and a leaked storage
key alone does not expose secret plaintexts.

Mutations are applied in memory first and then persisted. A failed save
leaves memory ahead of storage; a failed key rotation leaves some secrets
re-keyed in memory and nothing persisted. Neither is rolled back.
"""
import logging
from typing import List, Optional

from secvault.crypto.aead import KEY_LENGTH, aead_decrypt, aead_encrypt
from secvault.crypto.hash import Key
from secvault.errors import (
    InvalidKeyLengthError,
    LoadCollectionError,
    ProfileIdError,
    SaveCollectionError,
    SecVaultError,
    SecretNotFoundError,
    SourceNotFoundError,
    StorageRequiredError,
)
from secvault.storage.vault import Storage
from secvault.utils.helper import Clock, IdGenerator, new_uuid, utc_now
from secvault.vault.collection import Collection
from secvault.vault.secret import Secret, SecretOptions, SecretUpdate

logger = logging.getLogger("secvault.vault")


class Handler:
    def __init__(
        self,
        profile_id: str,
        storage_key: Key,
        key: Key,
        storage: Storage,
        *,
        secondary_storage: Optional[Storage] = None,
        load_collection: bool = False,
        clock: Clock = utc_now,
        id_generator: IdGenerator = new_uuid,
    ):
        if not profile_id:
            raise ProfileIdError()
        if len(storage_key.value) != KEY_LENGTH:
            raise InvalidKeyLengthError()
        if len(key.value) != KEY_LENGTH:
            raise InvalidKeyLengthError()
        if storage is None:
            raise StorageRequiredError()

        self.profile_id = profile_id
        self._storage = storage
        self._secondary_storage = secondary_storage
        self._storage_key = storage_key
        self._key = key
        self._clock = clock
        self._id_generator = id_generator
        self._collection = Collection(profile_id, clock=clock)

        if load_collection:
            try:
                self.load()
            except LoadCollectionError as err:
                if not isinstance(err.__cause__, SourceNotFoundError):
                    raise
                logger.info("No collection stored for profile=%s, starting empty", profile_id)

    @property
    def collection(self) -> Collection:
        return self._collection

    @property
    def key(self) -> Key:
        return self._key

    def load(self) -> None:
        self._collection = _load_decrypt_decode(self._storage, self._storage_key, self._clock)

    def save(self) -> None:
        _encode_encrypt_save(self._storage, self._collection, self._storage_key)

    def sync(self) -> None:
        """Make both backends hold the most recently updated collection.

        Ordering uses the backends' last-modified markers only, and the
        newer side replaces the older one wholesale. Edits present only on
        the older side are lost.
        """
        if self._secondary_storage is None:
            return

        updated = self._storage.updated()
        secondary_updated = self._secondary_storage.updated()

        if secondary_updated > updated:
            src, dst = self._secondary_storage, self._storage
        else:
            src, dst = self._storage, self._secondary_storage

        logger.info("Syncing profile=%s from %r to %r", self.profile_id, src, dst)
        self._collection = _load_decrypt_decode(src, self._storage_key, self._clock)
        _encode_encrypt_save(dst, self._collection, self._storage_key)

    def get_secret_by_id(self, id: str) -> Secret:
        return self._bound(self._collection.get_by_id(id))

    def get_secret_by_name(self, name: str) -> Secret:
        return self._bound(self._collection.get_by_name(name))

    def list_secrets(self) -> List[Secret]:
        return self._collection.list()

    def add_secret(
        self, name: str, value: bytes | str, options: Optional[SecretOptions] = None,
    ) -> Secret:
        secret = Secret.new(
            name, value, self._key.value, options,
            clock=self._clock, id_generator=self._id_generator,
        )
        self._collection.add(secret)
        logger.debug("Added secret id=%s name=%s", secret.id, secret.name)
        self.save()
        return self.get_secret_by_id(secret.id)

    def update_secret_by_id(self, id: str, update: SecretUpdate) -> Secret:
        secret = self._update_secret(self.get_secret_by_id(id), update)
        self.save()
        return secret

    def update_secret_by_name(self, name: str, update: SecretUpdate) -> Secret:
        secret = self._update_secret(self.get_secret_by_name(name), update)
        self.save()
        return secret

    def delete_secret_by_id(self, id: str) -> None:
        self._collection.remove_by_id(id)
        logger.debug("Deleted secret id=%s", id)
        self.save()

    def delete_secret_by_name(self, name: str) -> None:
        self._collection.remove_by_name(name)
        logger.debug("Deleted secret name=%s", name)
        self.save()

    def update_key(self, key: Key) -> None:
        """Re-encrypt every secret value under ``key``, then persist once."""
        if len(key.value) != KEY_LENGTH:
            raise InvalidKeyLengthError()
        for secret in self._collection.list():
            if secret.key is None:
                secret.bind_key(self._key.value)
            self._update_secret(secret, SecretUpdate(key=key.value))
        self._key = key
        logger.info("Rotated value key for %d secret(s)", len(self._collection))
        self.save()

    def _bound(self, secret: Secret) -> Secret:
        if not secret.valid():
            raise SecretNotFoundError()
        if secret.key is None:
            secret.bind_key(self._key.value)
        return secret

    def _update_secret(self, secret: Secret, update: SecretUpdate) -> Secret:
        secret.apply_update(update, clock=self._clock)
        self._collection.update(secret)
        return secret


def _load_decrypt_decode(storage: Storage, storage_key: Key, clock: Clock) -> Collection:
    try:
        data = storage.load()
        decrypted = aead_decrypt(storage_key.value, data)
        return Collection.decode(decrypted, clock=clock)
    except (SecVaultError, OSError) as err:
        raise LoadCollectionError(f"load collection failed: {err}") from err


def _encode_encrypt_save(storage: Storage, collection: Collection, storage_key: Key) -> None:
    try:
        encoded = collection.encode()
        encrypted = aead_encrypt(storage_key.value, encoded)
        storage.save(encrypted)
    except (SecVaultError, OSError) as err:
        raise SaveCollectionError(f"save collection failed: {err}") from err
