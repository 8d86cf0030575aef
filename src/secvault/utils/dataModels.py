import json
import struct

from dataclasses import dataclass, asdict
from typing import Any, Dict

COLLECTION_MAGIC = b"SVC1"
COLLECTION_VERSION = 1
COLLECTION_HDR_FMT = ">4sB"  # magic, version
COLLECTION_HDR_SIZE = struct.calcsize(COLLECTION_HDR_FMT)

PROFILE_VERSION = 1
MIN_GENERATED_LENGTH = 8
DEFAULT_GENERATED_LENGTH = 16


@dataclass
class Profile:
    """Per-vault configuration persisted as profile.json.

    storage_key is the encoded machine key for the collection blob. The
    value key is never stored: it is re-derived from the passphrase with
    key_salt. verifier is an independently salted derivation of the
    passphrase used only to check it.
    """
    id: str
    name: str
    storage_key: str
    key_salt: str
    verifier: str
    secondary: str | None = None
    version: int = PROFILE_VERSION

    def to_bytes(self) -> bytes:
        return json.dumps(asdict(self), ensure_ascii=False, indent=2).encode("utf-8")

    @staticmethod
    def from_bytes(b: bytes) -> "Profile":
        obj: Dict[str, Any] = json.loads(b.decode("utf-8"))
        return Profile(
            id=obj["id"],
            name=obj.get("name", ""),
            storage_key=obj["storage_key"],
            key_salt=obj["key_salt"],
            verifier=obj["verifier"],
            secondary=obj.get("secondary"),
            version=obj.get("version", PROFILE_VERSION),
        )
