import logging
import os

from datetime import datetime, timezone
from pathlib import Path
from typing import Protocol, runtime_checkable

from secvault.errors import MalformedDataError, SourceNotFoundError, StorageError
from secvault.utils.dataModels import Profile
from secvault.utils.helper import MIN_TIME

logger = logging.getLogger("secvault.storage")


@runtime_checkable
class Storage(Protocol):
    """Byte-blob persistence target consumed by the Handler."""

    def save(self, data: bytes) -> None:
        ...

    def load(self) -> bytes:
        """Raise SourceNotFoundError if nothing has been persisted yet."""
        ...

    def updated(self) -> datetime:
        """Last-modified marker, used only to order a sync."""
        ...


class FileStorage:
    """Stores the encrypted collection blob in a single file."""

    def __init__(self, path: Path | str):
        self.path = Path(path)

    def __repr__(self) -> str:
        return f"<FileStorage {self.path}>"

    def save(self, data: bytes) -> None:
        tmp = self.path.with_suffix(".tmp")
        try:
            self.path.parent.mkdir(mode=0o700, parents=True, exist_ok=True)
            fd = os.open(tmp, os.O_CREAT | os.O_WRONLY | os.O_TRUNC, 0o600)
            with os.fdopen(fd, "wb") as f:
                f.write(data)
            os.replace(tmp, self.path)
        except OSError as err:
            raise StorageError(f"saving {self.path}: {err}") from err
        logger.debug("Saved %d bytes to %s", len(data), self.path)

    def load(self) -> bytes:
        try:
            return self.path.read_bytes()
        except FileNotFoundError as err:
            raise SourceNotFoundError() from err
        except OSError as err:
            raise StorageError(f"loading {self.path}: {err}") from err

    def updated(self) -> datetime:
        try:
            mtime = self.path.stat().st_mtime
        except FileNotFoundError:
            # Never persisted: loses any sync ordering.
            return MIN_TIME
        except OSError as err:
            raise StorageError(f"stat {self.path}: {err}") from err
        return datetime.fromtimestamp(mtime, tz=timezone.utc)


def stage_profile(path: Path, profile: Profile) -> Path:
    """Write ``profile`` next to ``path`` without replacing it yet."""
    tmp = path.with_suffix(".tmp")
    try:
        path.parent.mkdir(mode=0o700, parents=True, exist_ok=True)
        fd = os.open(tmp, os.O_CREAT | os.O_WRONLY | os.O_TRUNC, 0o600)
        with os.fdopen(fd, "wb") as f:
            f.write(profile.to_bytes())
    except OSError as err:
        raise StorageError(f"saving {path}: {err}") from err
    return tmp


def commit_profile(staged: Path, path: Path) -> None:
    try:
        os.replace(staged, path)
    except OSError as err:
        raise StorageError(
            f"saving {path}: {err} (the new profile is kept at {staged})"
        ) from err
    logger.debug("Saved profile %s", path)


def save_profile(path: Path, profile: Profile) -> None:
    commit_profile(stage_profile(path, profile), path)


def load_profile(path: Path) -> Profile:
    try:
        data = path.read_bytes()
    except FileNotFoundError as err:
        raise SourceNotFoundError(f"no profile at {path}, run init first") from err
    try:
        return Profile.from_bytes(data)
    except (ValueError, KeyError, TypeError) as err:
        raise MalformedDataError(f"{path} is corrupt") from err
