import logging
import os
import tempfile
from dataclasses import dataclass
from pathlib import Path
from typing import BinaryIO

from intake.config import settings
from intake.utils.hashing import sha256_file

logger = logging.getLogger(__name__)

CHUNK_SIZE = 1024 * 1024


def ensure_data_dirs(data_path: Path | None = None) -> Path:
    path = data_path or settings.data_path
    path.mkdir(parents=True, exist_ok=True)
    (path / "objects").mkdir(exist_ok=True)
    (path / "tmp").mkdir(exist_ok=True)
    return path


def sanitize_filename(name: str) -> str:
    keep = set("abcdefghijklmnopqrstuvwxyzABCDEFGHIJKLMNOPQRSTUVWXYZ0123456789._-")
    cleaned = "".join(c if c in keep else "_" for c in name)
    if cleaned in ("", ".", ".."):
        return "_"
    return cleaned


class UploadTooLarge(ValueError):
    def __init__(self, filename: str, max_bytes: int):
        super().__init__(f"File {filename!r} too large (max {max_bytes} bytes)")
        self.filename = filename
        self.max_bytes = max_bytes


@dataclass
class StagedFile:
    field_name: str
    filename: str
    path: Path
    size_bytes: int
    content_type: str | None = None
    file_hash: str | None = None

    def open(self) -> BinaryIO:
        return self.path.open("rb")


class StagingArea:
    """Request-scoped temp copies of uploaded files, deleted on exit."""

    def __init__(self, root: Path, max_bytes: int):
        self.root = Path(root)
        self.max_bytes = max_bytes
        self.files: list[StagedFile] = []

    def __enter__(self) -> "StagingArea":
        self.root.mkdir(parents=True, exist_ok=True)
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.release()

    def stage(
        self,
        field_name: str,
        filename: str | None,
        stream: BinaryIO,
        content_type: str | None = None,
    ) -> StagedFile:
        original = filename or "unnamed_file"
        fd, tmp_name = tempfile.mkstemp(prefix="upload-", dir=self.root)
        tmp_path = Path(tmp_name)
        size = 0
        try:
            with os.fdopen(fd, "wb") as out:
                while True:
                    chunk = stream.read(CHUNK_SIZE)
                    if not chunk:
                        break
                    size += len(chunk)
                    if size > self.max_bytes:
                        raise UploadTooLarge(original, self.max_bytes)
                    out.write(chunk)
        except BaseException:
            tmp_path.unlink(missing_ok=True)
            raise

        staged = StagedFile(
            field_name=field_name,
            filename=original,
            path=tmp_path,
            size_bytes=size,
            content_type=content_type,
            file_hash=sha256_file(tmp_path),
        )
        self.files.append(staged)
        return staged

    def release(self) -> None:
        for staged in self.files:
            try:
                staged.path.unlink(missing_ok=True)
            except OSError as exc:
                logger.warning("Could not remove staged file %s: %s", staged.path, exc)
        self.files = []
