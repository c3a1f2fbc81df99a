"""Media lifecycle for uploaded images.

Images live flat inside one upload directory and are referenced everywhere
by an opaque ``/uploads/<filename>`` URL. Only the basename of a reference is
ever resolved, and always inside the upload directory.

Deletion is best-effort: a missing file is fine, any other filesystem error
is logged as MediaCleanupFailure and swallowed.
"""

from __future__ import annotations

import logging
import os
import random
import time
from pathlib import Path
from typing import Iterable

from werkzeug.utils import secure_filename

from constants import ALLOWED_IMAGE_EXTENSIONS, MAX_UPLOAD_BYTES, UPLOAD_URL_PREFIX
from realtime.errors import MediaCleanupFailure
from realtime.schemas import Post


class UploadRejected(ValueError):
    """Raised for uploads that are not acceptable images."""

    def __init__(self, message: str = "Only image files are allowed!"):
        self.message = message
        super().__init__(message)


class MediaStore:
    def __init__(
        self,
        upload_dir,
        allowed_extensions: Iterable[str] = ALLOWED_IMAGE_EXTENSIONS,
        max_bytes: int = MAX_UPLOAD_BYTES,
        url_prefix: str = UPLOAD_URL_PREFIX,
    ) -> None:
        self.upload_dir = Path(upload_dir).resolve()
        self.upload_dir.mkdir(parents=True, exist_ok=True)
        self.allowed_extensions = {str(e).lower().lstrip(".") for e in allowed_extensions}
        self.max_bytes = int(max_bytes)
        self.url_prefix = url_prefix if url_prefix.endswith("/") else url_prefix + "/"

    # ------------------------------------------------------------------
    # References
    # ------------------------------------------------------------------
    def url_for(self, filename: str) -> str:
        return f"{self.url_prefix}{filename}"

    def path_for(self, url) -> Path | None:
        """Map a reference onto a file inside the upload directory."""
        if not url or not isinstance(url, str):
            return None
        name = os.path.basename(url.strip().replace("\\", "/"))
        if not name or name in {".", ".."}:
            return None
        return self.upload_dir / name

    # ------------------------------------------------------------------
    # Uploads
    # ------------------------------------------------------------------
    def is_allowed_image(self, filename: str | None, mimetype: str | None) -> bool:
        ext = Path(secure_filename(filename or "")).suffix.lower().lstrip(".")
        if ext not in self.allowed_extensions:
            return False
        mime = (mimetype or "").lower()
        if not mime.startswith("image/"):
            return False
        return mime.split("/", 1)[1] in self.allowed_extensions

    def _unique_name(self, filename: str) -> str:
        ext = Path(secure_filename(filename)).suffix.lower()
        return f"{int(time.time() * 1000)}-{random.randint(0, 10**9)}{ext}"

    def save_image(self, file_storage) -> str:
        """Store an uploaded werkzeug FileStorage; returns its URL reference."""
        if file_storage is None or not file_storage.filename:
            raise UploadRejected("No file uploaded")
        if not self.is_allowed_image(file_storage.filename, file_storage.mimetype):
            raise UploadRejected()

        name = self._unique_name(file_storage.filename)
        path = self.upload_dir / name
        file_storage.save(str(path))

        if path.stat().st_size > self.max_bytes:
            self.discard(self.url_for(name))
            raise UploadRejected(f"File too large. Maximum size is {self.max_bytes // (1024 * 1024)}MB.")

        logging.info("[MEDIA] stored %s (%s)", name, file_storage.mimetype)
        return self.url_for(name)

    # ------------------------------------------------------------------
    # Deletion
    # ------------------------------------------------------------------
    def discard(self, url) -> bool:
        """Delete one referenced file. True if a file was removed."""
        path = self.path_for(url)
        if path is None:
            return False
        try:
            path.unlink()
            return True
        except FileNotFoundError:
            return False
        except OSError as exc:
            raise MediaCleanupFailure(f"Could not delete {path.name}: {exc}") from exc

    def discard_all(self, urls: Iterable[str]) -> int:
        removed = 0
        for url in urls:
            try:
                if self.discard(url):
                    removed += 1
            except MediaCleanupFailure as exc:
                logging.error("[MEDIA] cleanup failed: %s", exc.message)
        return removed

    def discard_post(self, post: Post) -> int:
        """Delete the post image and every reply image."""
        removed = self.discard_all(post.image_urls())
        if removed:
            logging.info("[MEDIA] removed %d file(s) for post %s", removed, post.id)
        return removed

    def sweep_orphans(self, referenced: Iterable[str], max_age_seconds: float) -> int:
        """Delete stale files nothing references (uploaded but never posted)."""
        keep = {p.name for p in (self.path_for(u) for u in referenced) if p is not None}
        cutoff = time.time() - float(max_age_seconds)
        stale = []
        for entry in self.upload_dir.iterdir():
            if not entry.is_file() or entry.name in keep:
                continue
            try:
                if entry.stat().st_mtime < cutoff:
                    stale.append(self.url_for(entry.name))
            except FileNotFoundError:
                continue
        return self.discard_all(stale)
