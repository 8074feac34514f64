"""
Local filesystem storage for uploaded breakdown photos.
Files are written under the upload directory; URLs point at the CDN base when one is configured.
"""
import os
import shutil
from pathlib import Path
from typing import BinaryIO, Optional
from urllib.parse import quote, urljoin

import structlog

from .provider import StorageProvider


log = structlog.get_logger(__name__)


class LocalStorageProvider(StorageProvider):
    """Local filesystem storage provider."""

    def __init__(self, base_dir: str = "uploads", public_base_url: Optional[str] = None):
        self.base_dir = Path(base_dir)
        self.public_base_url = public_base_url

    def _get_path(self, key: str) -> Path:
        clean_key = key.lstrip("/").replace("..", "").replace("\\", "/")
        return self.base_dir / clean_key

    def public_url(self, key: str) -> str:
        quoted = quote(key.lstrip("/"))
        if self.public_base_url:
            base = self.public_base_url if self.public_base_url.endswith("/") else f"{self.public_base_url}/"
            return urljoin(base, quoted)
        return f"/uploads/{quoted}"

    def save(self, stream: BinaryIO, key: str) -> str:
        path = self._get_path(key)
        path.parent.mkdir(parents=True, exist_ok=True)
        with open(path, "wb") as f:
            shutil.copyfileobj(stream, f)
        log.info("upload_stored", key=key, size=os.path.getsize(path))
        return self.public_url(key)

    def exists(self, key: str) -> bool:
        return self._get_path(key).exists()

    def delete(self, key: str) -> None:
        path = self._get_path(key)
        try:
            if path.exists():
                path.unlink()
        except OSError as e:
            log.warning("upload_delete_failed", key=key, error=str(e))
