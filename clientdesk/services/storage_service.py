"""
File Storage - directory-backed bucket for ticket attachments
"""
from pathlib import Path
from typing import Iterable
import logging
import re
import uuid

logger = logging.getLogger(__name__)

UPLOADS_URL_PREFIX = "/uploads/"


class FileStorage:
    def __init__(self, base_dir: str):
        self.base_dir = Path(base_dir)

    def save(self, filename: str, content: bytes, folder: str = "tickets") -> str:
        """Write the file and return its public url"""
        safe_name = re.sub(r"[^A-Za-z0-9._-]", "_", Path(filename or "upload").name)
        key = f"{folder}/{uuid.uuid4().hex}_{safe_name}"
        path = self.base_dir / key
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_bytes(content)
        return UPLOADS_URL_PREFIX + key

    def path_for(self, url: str) -> Path:
        key = url[len(UPLOADS_URL_PREFIX):] if url.startswith(UPLOADS_URL_PREFIX) else url
        path = (self.base_dir / key).resolve()
        if self.base_dir.resolve() not in path.parents:
            raise ValueError(f"Path outside storage: {url}")
        return path

    def delete(self, url: str) -> bool:
        path = self.path_for(url)
        if not path.exists():
            return False
        path.unlink()
        return True

    def delete_many(self, urls: Iterable[str]) -> int:
        """Remove each file, logging failures. Returns how many were removed."""
        removed = 0
        for url in urls:
            try:
                if self.delete(url):
                    removed += 1
            except (OSError, ValueError) as exc:
                logger.warning(f"Could not delete stored file {url}: {exc}")
        return removed
