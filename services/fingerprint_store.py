"""
Content-addressable storage for result snapshots.

The ledger and verifier only see ``FingerprintStore``; which backend sits
behind it is decided once, in the app factory, from FINGERPRINT_STORE.

- IPFSFingerprintStore: IPFS HTTP RPC API (``/api/v0/add``, ``/api/v0/cat``)
- LocalBlobFingerprintStore: sha256-named files in a local directory
"""

from __future__ import annotations

import hashlib
import logging
import os
import re
import tempfile
from abc import ABC, abstractmethod
from typing import Optional

import requests

from services.errors import StoreUnavailable

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT_SECONDS = 10.0


class FingerprintStore(ABC):
    """put(bytes) -> id, get(id) -> bytes | None"""

    @abstractmethod
    def put(self, data: bytes) -> str:
        """Store ``data`` and return its content-derived id."""
        ...

    @abstractmethod
    def get(self, content_id: str) -> Optional[bytes]:
        """Return the stored bytes, or None when the id is unknown."""
        ...

    @abstractmethod
    def compute_id(self, data: bytes) -> str:
        """Id ``data`` would get from ``put``, without storing it."""
        ...


class IPFSFingerprintStore(FingerprintStore):
    def __init__(
        self,
        endpoint: str,
        *,
        timeout_seconds: Optional[float] = None,
        session: Optional[requests.Session] = None,
    ):
        if not endpoint:
            raise ValueError("endpoint is required")
        self._base_url = str(endpoint).rstrip("/")
        self._timeout = float(timeout_seconds or DEFAULT_TIMEOUT_SECONDS)
        self._session = session or requests.Session()

    def close(self) -> None:
        self._session.close()

    def _add(self, data: bytes, only_hash: bool) -> str:
        url = f"{self._base_url}/api/v0/add"
        params = {"pin": "true", "cid-version": "1"}
        if only_hash:
            params["only-hash"] = "true"
        try:
            resp = self._session.post(
                url,
                params=params,
                files={"file": ("snapshot.json", data, "application/json")},
                timeout=self._timeout,
            )
            resp.raise_for_status()
            payload = resp.json()
        except requests.Timeout as e:
            raise StoreUnavailable(f"IPFS add timed out after {self._timeout}s") from e
        except (requests.RequestException, ValueError) as e:
            raise StoreUnavailable(f"IPFS add failed: {e}") from e

        content_id = payload.get("Hash") if isinstance(payload, dict) else None
        if not content_id:
            raise StoreUnavailable("IPFS add returned no Hash")
        return content_id

    def put(self, data: bytes) -> str:
        content_id = self._add(data, only_hash=False)
        logger.debug("IPFS stored %s bytes as %s", len(data), content_id)
        return content_id

    def compute_id(self, data: bytes) -> str:
        return self._add(data, only_hash=True)

    def get(self, content_id: str) -> Optional[bytes]:
        url = f"{self._base_url}/api/v0/cat"
        try:
            resp = self._session.post(
                url,
                params={"arg": content_id},
                timeout=self._timeout,
            )
        except requests.Timeout as e:
            raise StoreUnavailable(f"IPFS cat timed out after {self._timeout}s") from e
        except requests.RequestException as e:
            raise StoreUnavailable(f"IPFS cat failed: {e}") from e

        if resp.status_code >= 500 and "not found" not in resp.text.lower():
            raise StoreUnavailable(f"IPFS cat returned {resp.status_code}")
        if not resp.ok:
            logger.warning("IPFS content missing: %s (%s)", content_id, resp.status_code)
            return None
        return resp.content


_HEX_ID = re.compile(r"^[0-9a-f]{64}$")


class LocalBlobFingerprintStore(FingerprintStore):
    def __init__(self, root_dir: str):
        self._root = root_dir
        os.makedirs(self._root, exist_ok=True)

    def _path(self, content_id: str) -> str:
        return os.path.join(self._root, f"{content_id}.json")

    def compute_id(self, data: bytes) -> str:
        return hashlib.sha256(data).hexdigest()

    def put(self, data: bytes) -> str:
        content_id = self.compute_id(data)
        path = self._path(content_id)
        if os.path.exists(path):
            return content_id
        try:
            fd, tmp_path = tempfile.mkstemp(dir=self._root, suffix=".tmp")
            with os.fdopen(fd, "wb") as fh:
                fh.write(data)
            os.replace(tmp_path, path)
        except OSError as e:
            raise StoreUnavailable(f"local blob write failed: {e}") from e
        logger.debug("Local blob stored %s bytes as %s", len(data), content_id)
        return content_id

    def get(self, content_id: str) -> Optional[bytes]:
        if not content_id or not _HEX_ID.match(content_id):
            return None
        path = self._path(content_id)
        if not os.path.exists(path):
            logger.warning("Local blob missing: %s", content_id)
            return None
        try:
            with open(path, "rb") as fh:
                return fh.read()
        except OSError as e:
            raise StoreUnavailable(f"local blob read failed: {e}") from e


def store_from_config(config) -> FingerprintStore:
    kind = str(config.get("FINGERPRINT_STORE", "ipfs")).lower()
    if kind == "ipfs":
        return IPFSFingerprintStore(
            config["IPFS_ENDPOINT"],
            timeout_seconds=config.get("FINGERPRINT_STORE_TIMEOUT"),
        )
    if kind == "local":
        return LocalBlobFingerprintStore(config["LOCAL_BLOB_DIR"])
    raise ValueError(f"unknown FINGERPRINT_STORE: {kind}")
