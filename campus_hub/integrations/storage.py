"""
Blob storage adapters for event assets (images and documents).

``SupabaseStorage`` talks to the Supabase Storage REST API with the service
role key; ``LocalStorage`` keeps objects in a directory and is used for
development and tests.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from pathlib import Path, PurePosixPath
from typing import Iterable, Sequence
from urllib.parse import quote, unquote, urlsplit

import requests

from campus_hub.errors import StorageError

logger = logging.getLogger(__name__)

LIST_PAGE_SIZE = 1000


def extract_storage_key(url: str | None, bucket: str) -> str | None:
    """
    Reduce an asset reference to the storage key inside ``bucket``.

    Public URLs look like ``.../storage/v1/object/public/<bucket>/<key>`` (or
    ``/uploads/<bucket>/<key>`` for local storage); the key is everything after
    the first ``/<bucket>/`` segment, URL-decoded. A bare relative value is
    treated as the key itself. Returns None for empty references and URLs that
    do not point into the bucket.
    """
    if not url or not url.strip():
        return None
    parts = urlsplit(url.strip())
    path = unquote(parts.path)
    marker = f"/{bucket}/"
    if marker in path:
        key = path.split(marker, 1)[1]
        return key or None
    if not parts.scheme and not parts.netloc:
        return path.lstrip("/") or None
    return None


def reference_basename(url: str | None) -> str | None:
    """Final path segment of a reference, used as a conservative match."""
    if not url or not url.strip():
        return None
    name = PurePosixPath(unquote(urlsplit(url.strip()).path)).name
    return name or None


def is_placeholder_url(url: str | None, placeholder_hosts: Iterable[str]) -> bool:
    """True for stock placeholder images the application does not own."""
    if not url:
        return False
    host = (urlsplit(url.strip()).hostname or "").lower()
    return any(host == h or host.endswith(f".{h}") for h in placeholder_hosts)


class BlobStorage(ABC):
    """Object storage for a single bucket."""

    def __init__(self, bucket: str):
        self.bucket = bucket

    @abstractmethod
    def list_objects(self) -> list[str]:
        """Return every object key present in the bucket."""

    @abstractmethod
    def delete_objects(self, keys: Sequence[str]) -> None:
        """Delete keys in one call; raises StorageError on failure."""

    @abstractmethod
    def upload(self, key: str, data: bytes, *, content_type: str | None = None) -> str:
        """Store a new object and return its public URL."""

    @abstractmethod
    def public_url(self, key: str) -> str:
        ...


class SupabaseStorage(BlobStorage):
    """Supabase Storage REST client scoped to one bucket."""

    def __init__(
        self,
        base_url: str,
        service_key: str,
        bucket: str,
        *,
        session: requests.Session | None = None,
        timeout: float = 30.0,
    ):
        super().__init__(bucket)
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.session = session or requests.Session()
        self.session.headers.update({"Authorization": f"Bearer {service_key}", "apikey": service_key})

    @property
    def _api(self) -> str:
        return f"{self.base_url}/storage/v1"

    def _request(self, method: str, url: str, **kwargs) -> requests.Response:
        try:
            response = self.session.request(method, url, timeout=self.timeout, **kwargs)
            response.raise_for_status()
        except requests.RequestException as exc:
            raise StorageError(f"Storage {method} {url} failed: {exc}") from exc
        return response

    def _list_prefix(self, prefix: str) -> list[str]:
        keys: list[str] = []
        offset = 0
        while True:
            response = self._request(
                "POST",
                f"{self._api}/object/list/{self.bucket}",
                json={
                    "prefix": prefix,
                    "limit": LIST_PAGE_SIZE,
                    "offset": offset,
                    "sortBy": {"column": "name", "order": "asc"},
                },
            )
            items = response.json() or []
            for item in items:
                name = item.get("name")
                if not name:
                    continue
                if item.get("id") is None:
                    # Folders come back without an object id
                    keys.extend(self._list_prefix(f"{prefix}{name}/"))
                else:
                    keys.append(f"{prefix}{name}")
            if len(items) < LIST_PAGE_SIZE:
                return keys
            offset += LIST_PAGE_SIZE

    def list_objects(self) -> list[str]:
        return self._list_prefix("")

    def delete_objects(self, keys: Sequence[str]) -> None:
        if not keys:
            return
        self._request("DELETE", f"{self._api}/object/{self.bucket}", json={"prefixes": list(keys)})

    def upload(self, key: str, data: bytes, *, content_type: str | None = None) -> str:
        headers = {"cache-control": "3600", "x-upsert": "false"}
        if content_type:
            headers["Content-Type"] = content_type
        self._request("POST", f"{self._api}/object/{self.bucket}/{quote(key)}", data=data, headers=headers)
        return self.public_url(key)

    def public_url(self, key: str) -> str:
        return f"{self._api}/object/public/{self.bucket}/{quote(key)}"


class LocalStorage(BlobStorage):
    """Directory-backed storage: ``<root>/<bucket>/<key>``."""

    def __init__(self, root: str | Path, bucket: str, *, base_url: str = "/uploads"):
        super().__init__(bucket)
        self.root = Path(root) / bucket
        self.base_url = base_url.rstrip("/")

    def _path_for(self, key: str) -> Path:
        path = (self.root / key).resolve()
        root = self.root.resolve()
        if root != path and root not in path.parents:
            raise StorageError(f"Key '{key}' escapes the {self.bucket} bucket", status_code=400)
        return path

    def list_objects(self) -> list[str]:
        if not self.root.exists():
            return []
        return sorted(p.relative_to(self.root).as_posix() for p in self.root.rglob("*") if p.is_file())

    def delete_objects(self, keys: Sequence[str]) -> None:
        for key in keys:
            try:
                self._path_for(key).unlink(missing_ok=True)
            except OSError as exc:
                raise StorageError(f"Failed to delete {key}: {exc}") from exc

    def upload(self, key: str, data: bytes, *, content_type: str | None = None) -> str:
        path = self._path_for(key)
        if path.exists():
            raise StorageError(f"Object '{key}' already exists", status_code=409)
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_bytes(data)
        except OSError as exc:
            raise StorageError(f"Failed to store {key}: {exc}") from exc
        logger.debug("Stored %s (%d bytes, %s)", key, len(data), content_type or "unknown type")
        return self.public_url(key)

    def public_url(self, key: str) -> str:
        return f"{self.base_url}/{self.bucket}/{quote(key)}"
