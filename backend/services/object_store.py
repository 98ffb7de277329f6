"""
Object storage for uploaded CV files.

Two backends:

- ``local``: writes under ``UPLOAD_DIR``; files are served by the app at
  ``/uploads``.
- ``supabase``: Supabase Storage REST API via ``httpx``; files land in the
  configured public bucket.

Both return the public URL of the stored object and raise
:class:`CollaboratorFailure` on any storage error.
"""

import logging
import re
import time
from pathlib import Path
from typing import Optional
from urllib.parse import quote

import httpx
from fastapi import Request

from auth.errors import CollaboratorFailure, ConfigurationError
from config import Settings, settings

logger = logging.getLogger(__name__)

COLLABORATOR = "object_store"

_UNSAFE_CHARS = re.compile(r"[^A-Za-z0-9._-]")


def make_object_key(telegram_id: str, filename: Optional[str], now: Optional[float] = None) -> str:
    """
    Build the storage key ``{telegram_id}_{epoch_millis}_{filename}``.

    Directory components are dropped and anything outside ``[A-Za-z0-9._-]``
    in the file name is replaced with ``_``.
    """
    millis = int((time.time() if now is None else now) * 1000)
    name = Path(filename or "cv").name or "cv"
    name = _UNSAFE_CHARS.sub("_", name)
    owner = _UNSAFE_CHARS.sub("_", telegram_id)
    return f"{owner}_{millis}_{name}"


class ObjectStore:
    """Interface: store bytes under a key and return a public URL."""

    name = "base"

    async def upload(self, key: str, content: bytes, content_type: str) -> str:
        raise NotImplementedError


class LocalObjectStore(ObjectStore):
    name = "local"

    def __init__(self, root: str, public_base_url: str, url_prefix: str = "/uploads"):
        self.root = Path(root)
        self.public_base_url = public_base_url.rstrip("/")
        self.url_prefix = url_prefix

    async def upload(self, key: str, content: bytes, content_type: str) -> str:
        target = self.root / key
        try:
            self.root.mkdir(parents=True, exist_ok=True)
            target.write_bytes(content)
        except OSError as exc:
            logger.error(f"Local upload failed for {key}: {exc}")
            raise CollaboratorFailure(COLLABORATOR) from exc

        logger.debug(f"Stored {len(content)} bytes ({content_type}) at {target}")
        return f"{self.public_base_url}{self.url_prefix}/{quote(key)}"


class SupabaseObjectStore(ObjectStore):
    name = "supabase"

    def __init__(
        self,
        url: str,
        api_key: str,
        bucket: str,
        timeout: float = 30.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.url = url.rstrip("/")
        self.api_key = api_key
        self.bucket = bucket
        self.timeout = timeout
        self._transport = transport

    def public_url(self, key: str) -> str:
        return f"{self.url}/storage/v1/object/public/{self.bucket}/{quote(key)}"

    async def upload(self, key: str, content: bytes, content_type: str) -> str:
        endpoint = f"{self.url}/storage/v1/object/{self.bucket}/{quote(key)}"
        headers = {
            "Authorization": f"Bearer {self.api_key}",
            "apikey": self.api_key,
            "Content-Type": content_type or "application/octet-stream",
            "x-upsert": "false",
        }
        try:
            async with httpx.AsyncClient(transport=self._transport) as client:
                resp = await client.post(
                    endpoint, content=content, headers=headers, timeout=self.timeout,
                )
                resp.raise_for_status()
        except httpx.HTTPError as exc:
            logger.error(f"Supabase upload failed for {key}: {exc}")
            raise CollaboratorFailure(COLLABORATOR) from exc

        return self.public_url(key)


def build_object_store(cfg: Settings) -> ObjectStore:
    """Create the object store selected by ``STORAGE_BACKEND``."""
    backend = cfg.STORAGE_BACKEND.lower()
    if backend == "local":
        return LocalObjectStore(cfg.UPLOAD_DIR, cfg.PUBLIC_BASE_URL)
    if backend == "supabase":
        if not cfg.SUPABASE_URL or not cfg.SUPABASE_KEY:
            raise ConfigurationError(
                "SUPABASE_URL and SUPABASE_KEY are required for the supabase storage backend"
            )
        return SupabaseObjectStore(
            cfg.SUPABASE_URL, cfg.SUPABASE_KEY, cfg.SUPABASE_BUCKET,
        )
    raise ConfigurationError(f"Unknown STORAGE_BACKEND '{cfg.STORAGE_BACKEND}'")


def get_object_store(request: Request) -> ObjectStore:
    """
    FastAPI dependency returning the store built at startup.

    Built lazily from settings when the lifespan did not run.
    """
    store = getattr(request.app.state, "object_store", None)
    if store is None:
        store = build_object_store(settings)
        request.app.state.object_store = store
    return store
