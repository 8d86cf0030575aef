"""Collection: an ordered set of secrets indexed by both id and name.

Binary layout (see ``Collection.encode``)::

    magic     : 4 bytes  -> b"SVC1"
    version   : 1 byte   -> 0x01
    body      : compact UTF-8 JSON
                {profile_id, updated, secrets: [...], ids: {id: pos}, names: {name: pos}}

Secret values are base64 in the body. ``null`` and empty labels/tags are
kept distinct so decode(encode(c)) == c field for field.
"""
import base64
import binascii
import copy
import json
import logging
import struct

from datetime import datetime, timedelta
from typing import Any, Dict, List, Optional

from secvault.errors import (
    AlreadyExistsError,
    MalformedDataError,
    SecretNotFoundError,
    ValidationError,
)
from secvault.utils.dataModels import (
    COLLECTION_HDR_FMT,
    COLLECTION_HDR_SIZE,
    COLLECTION_MAGIC,
    COLLECTION_VERSION,
)
from secvault.utils.helper import Clock, from_iso, to_iso, utc_now
from secvault.vault.secret import Secret, SecretType

logger = logging.getLogger("secvault.vault")


class Collection:
    """Secrets with O(1) lookup by id and by name.

    Invariant: every entry in the id and name indices points at a position
    whose secret carries that exact id/name, and positions are dense.
    Not safe for concurrent mutation.
    """

    def __init__(self, profile_id: str = "", *, clock: Clock = utc_now):
        self.profile_id = profile_id
        self._secrets: List[Secret] = []
        self._ids: Dict[str, int] = {}
        self._names: Dict[str, int] = {}
        self._updated: Optional[datetime] = None
        self._clock = clock

    def __len__(self) -> int:
        return len(self._secrets)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Collection):
            return NotImplemented
        return (
            self.profile_id == other.profile_id
            and self._secrets == other._secrets
            and self._ids == other._ids
            and self._names == other._names
            and self._updated == other._updated
        )

    def __repr__(self) -> str:
        return f"<Collection profile={self.profile_id!r} secrets={len(self)} updated={self._updated}>"

    @property
    def updated(self) -> Optional[datetime]:
        """When the collection was last modified."""
        return self._updated

    def list(self) -> List[Secret]:
        return [copy.deepcopy(s) for s in self._secrets]

    def get_by_id(self, id: str) -> Secret:
        """Return a copy of the secret, or an empty (not ``valid()``) Secret."""
        i = self._ids.get(id)
        if i is None:
            return Secret()
        return copy.deepcopy(self._secrets[i])

    def get_by_name(self, name: str) -> Secret:
        i = self._names.get(name)
        if i is None:
            return Secret()
        return copy.deepcopy(self._secrets[i])

    def add(self, secret: Secret) -> None:
        if secret.id in self._ids or secret.name in self._names:
            raise AlreadyExistsError()

        self._secrets.append(copy.deepcopy(secret))
        index = len(self._secrets) - 1
        self._ids[secret.id] = index
        self._names[secret.name] = index
        self._touch()

    def update(self, secret: Secret) -> None:
        """Replace the stored record with the same id."""
        i = self._ids.get(secret.id)
        if i is None:
            raise SecretNotFoundError()
        if self._secrets[i].name != secret.name:
            raise ValidationError("the name of a secret cannot be changed")
        self._secrets[i] = copy.deepcopy(secret)
        self._touch()

    def remove_by_id(self, id: str) -> None:
        i = self._ids.get(id)
        if i is None:
            raise SecretNotFoundError()
        self._remove(i)
        self._touch()

    def remove_by_name(self, name: str) -> None:
        i = self._names.get(name)
        if i is None:
            raise SecretNotFoundError()
        self._remove(i)
        self._touch()

    def _remove(self, i: int) -> None:
        removed = self._secrets.pop(i)
        del self._ids[removed.id]
        del self._names[removed.name]
        for index in (self._ids, self._names):
            for k, v in index.items():
                if v > i:
                    index[k] = v - 1

    def _touch(self) -> None:
        now = self._clock()
        # updated strictly increases even if the clock stalls or steps back
        if self._updated is not None and now <= self._updated:
            now = self._updated + timedelta(microseconds=1)
        self._updated = now

    # Codec

    def encode(self) -> bytes:
        body = {
            "profile_id": self.profile_id,
            "updated": to_iso(self._updated),
            "secrets": [_secret_to_obj(s) for s in self._secrets],
            "ids": self._ids,
            "names": self._names,
        }
        header = struct.pack(COLLECTION_HDR_FMT, COLLECTION_MAGIC, COLLECTION_VERSION)
        return header + json.dumps(body, ensure_ascii=False, separators=(",", ":")).encode("utf-8")

    @classmethod
    def decode(cls, data: bytes, *, clock: Clock = utc_now) -> "Collection":
        if len(data) < COLLECTION_HDR_SIZE:
            raise MalformedDataError("collection data is too small or corrupt")
        magic, ver = struct.unpack(COLLECTION_HDR_FMT, data[:COLLECTION_HDR_SIZE])
        if magic != COLLECTION_MAGIC:
            raise MalformedDataError("invalid collection magic")
        if ver != COLLECTION_VERSION:
            raise MalformedDataError(f"unsupported collection version {ver}")

        try:
            obj = json.loads(data[COLLECTION_HDR_SIZE:].decode("utf-8"))
            if not isinstance(obj, dict):
                raise MalformedDataError("collection body is not an object")
            if not isinstance(obj["ids"], dict) or not isinstance(obj["names"], dict):
                raise MalformedDataError("collection indices are not objects")
            collection = cls(obj["profile_id"], clock=clock)
            collection._secrets = [_secret_from_obj(s) for s in obj["secrets"]]
            collection._ids = {k: int(v) for k, v in obj["ids"].items()}
            collection._names = {k: int(v) for k, v in obj["names"].items()}
            collection._updated = from_iso(obj["updated"])
        except (UnicodeDecodeError, ValueError, KeyError, TypeError, binascii.Error) as err:
            raise MalformedDataError("collection body cannot be decoded") from err

        collection._check_indices()
        logger.debug(
            "Decoded collection for profile=%s: %d secret(s)",
            collection.profile_id, len(collection),
        )
        return collection

    def _check_indices(self) -> None:
        n = len(self._secrets)
        if len(self._ids) != n or len(self._names) != n:
            raise MalformedDataError("collection indices do not match secrets")
        for k, i in self._ids.items():
            if not 0 <= i < n or self._secrets[i].id != k:
                raise MalformedDataError("collection id index is inconsistent")
        for k, i in self._names.items():
            if not 0 <= i < n or self._secrets[i].name != k:
                raise MalformedDataError("collection name index is inconsistent")


def _secret_to_obj(s: Secret) -> Dict[str, Any]:
    return {
        "id": s.id,
        "name": s.name,
        "display_name": s.display_name,
        "value": base64.b64encode(s.value).decode("ascii"),
        "type": int(s.type),
        "labels": s.labels,
        "tags": s.tags,
        "created": to_iso(s.created),
        "updated": to_iso(s.updated),
    }


def _secret_from_obj(obj: Dict[str, Any]) -> Secret:
    return Secret(
        id=obj["id"],
        name=obj["name"],
        display_name=obj["display_name"],
        value=base64.b64decode(obj["value"], validate=True),
        type=SecretType(obj["type"]),
        labels=obj["labels"],
        tags=obj["tags"],
        created=from_iso(obj["created"]),
        updated=from_iso(obj["updated"]),
    )
