"""Content store for attachment bytes.

``ContentStore`` is the capability the pipeline depends on: no-overwrite
writes, time-limited access URLs and bulk removal. ``LocalContentStore``
keeps objects under a directory and signs download URLs with HMAC-SHA256;
the ``/objects`` route serves them after ``verify_signature``.
"""

import hashlib
import hmac
import logging
import os
import shutil
import time
from pathlib import Path
from typing import BinaryIO, Protocol
from urllib.parse import quote, urlencode

from intake.services.exceptions import ContentStoreError, ObjectExistsError

logger = logging.getLogger(__name__)


class ContentStore(Protocol):
    def put_object(self, path: str, data: bytes | BinaryIO) -> str: ...

    def create_signed_url(self, path: str, expires_in: int) -> str: ...

    def remove(self, paths: list[str]) -> list[str]: ...


class LocalContentStore:
    def __init__(self, root: Path, secret: str, base_url: str):
        self.root = Path(root)
        self._secret = secret.encode("utf-8")
        self.base_url = base_url.rstrip("/")

    def _resolve(self, path: str) -> Path:
        root = self.root.resolve()
        full = (root / path).resolve()
        if full == root or root not in full.parents:
            raise ContentStoreError(f"Path escapes the object store: {path}")
        return full

    def put_object(self, path: str, data: bytes | BinaryIO) -> str:
        """Write a new object. Fails with ObjectExistsError if ``path`` is taken."""
        full = self._resolve(path)
        try:
            full.parent.mkdir(parents=True, exist_ok=True)
            with open(full, "xb") as out:
                if isinstance(data, (bytes, bytearray)):
                    out.write(data)
                else:
                    shutil.copyfileobj(data, out)
        except FileExistsError as exc:
            raise ObjectExistsError(path) from exc
        except OSError as exc:
            raise ContentStoreError(f"Could not write {path}: {exc}") from exc
        os.chmod(full, 0o444)
        return path

    def exists(self, path: str) -> bool:
        return self._resolve(path).is_file()

    def object_path(self, path: str) -> Path:
        full = self._resolve(path)
        if not full.is_file():
            raise ContentStoreError(f"Object not found: {path}")
        return full

    def _signature(self, path: str, expires: int) -> str:
        message = f"{path}:{expires}".encode("utf-8")
        return hmac.new(self._secret, message, hashlib.sha256).hexdigest()

    def create_signed_url(self, path: str, expires_in: int) -> str:
        if not self.exists(path):
            raise ContentStoreError(f"Object not found: {path}")
        expires = int(time.time()) + expires_in
        query = urlencode({"expires": expires, "signature": self._signature(path, expires)})
        return f"{self.base_url}/{quote(path)}?{query}"

    def verify_signature(self, path: str, expires: int, signature: str) -> bool:
        if expires < int(time.time()):
            return False
        return hmac.compare_digest(self._signature(path, expires), signature)

    def remove(self, paths: list[str]) -> list[str]:
        """Delete objects, returning the paths that could not be removed.

        Missing objects count as removed so a retried deletion succeeds.
        """
        failed: list[str] = []
        for path in paths:
            try:
                self._resolve(path).unlink(missing_ok=True)
            except (OSError, ContentStoreError) as exc:
                logger.warning("Could not remove object %s: %s", path, exc)
                failed.append(path)
        return failed
