import uuid

from datetime import datetime, timezone
from pathlib import Path
from typing import Callable, Dict

# Injected capabilities. Components take these as constructor arguments
# so tests can pin time and identifiers.
Clock = Callable[[], datetime]
IdGenerator = Callable[[], str]

MIN_TIME = datetime.min.replace(tzinfo=timezone.utc)


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def new_uuid() -> str:
    return str(uuid.uuid4())


def repo_paths(repo: Path, profile_id: str | None = None) -> Dict[str, Path]:
    paths = {
        "profile": repo / "profile.json",
        "collections": repo / "collections",
    }
    if profile_id:
        paths["collection"] = paths["collections"] / f"{profile_id}.sec"
    return paths


def to_iso(ts: datetime | None) -> str | None:
    if ts is None:
        return None
    return ts.isoformat()


def from_iso(value: str | None) -> datetime | None:
    if value is None:
        return None
    return datetime.fromisoformat(value)
