import logging
import shutil
import uuid
from pathlib import Path

from fastapi import HTTPException

logger = logging.getLogger(__name__)


def sanitize_filename(filename: str) -> str:
    basename = filename.replace("\\", "/").rsplit("/", 1)[-1]
    cleaned = "".join(
        ch if ch.isascii() and (ch.isalnum() or ch in "-_.") else "_"
        for ch in basename
    )
    cleaned = cleaned.lstrip("._").rstrip("_")
    return cleaned or "upload"


class LocalStorage:
    """Uploaded files on local disk, one directory per submission slug."""

    def __init__(self, root: str | Path):
        self.root = Path(root).resolve()

    def ensure_writable(self) -> None:
        self.root.mkdir(parents=True, exist_ok=True)
        marker = self.root / f".write-test-{uuid.uuid4().hex}"
        marker.write_bytes(b"ok")
        marker.unlink()
        logger.info("Upload directory %s is writable", self.root)

    def contains(self, path: str | Path) -> bool:
        resolved = Path(path).resolve()
        return resolved == self.root or self.root in resolved.parents

    def submission_dir(self, slug: str) -> Path:
        directory = (self.root / slug).resolve()
        if not self.contains(directory) or directory == self.root:
            raise HTTPException(status_code=400, detail="Invalid upload path")
        return directory

    def save(self, slug: str, original_filename: str, content: bytes) -> tuple[str, Path]:
        """Write ``content`` and return ``(stored_filename, path)``."""
        directory = self.submission_dir(slug)
        stored_filename = f"{uuid.uuid4()}_{sanitize_filename(original_filename)}"
        path = (directory / stored_filename).resolve()
        if not self.contains(path) or path.parent != directory:
            raise HTTPException(status_code=400, detail="Invalid upload path")
        try:
            directory.mkdir(parents=True, exist_ok=True)
            path.write_bytes(content)
        except OSError as exc:
            logger.error("Failed to write upload %s: %s", path, exc)
            raise HTTPException(status_code=500, detail="Failed to store file")
        return stored_filename, path

    def read(self, path: str | Path) -> bytes | None:
        if not self.contains(path):
            logger.warning("Refusing to read file outside upload root: %s", path)
            return None
        try:
            return Path(path).read_bytes()
        except OSError as exc:
            logger.warning("Failed to read stored file %s: %s", path, exc)
            return None

    def remove_file(self, path: str | Path | None) -> None:
        if not path:
            return
        if not self.contains(path):
            logger.warning("Refusing to remove file outside upload root: %s", path)
            return
        try:
            Path(path).unlink(missing_ok=True)
        except OSError as exc:
            logger.warning("Failed to remove file %s: %s", path, exc)

    def remove_submission_dir(self, slug: str) -> None:
        try:
            directory = self.submission_dir(slug)
        except HTTPException:
            logger.warning("Refusing to remove directory for slug %r", slug)
            return
        if not directory.exists():
            return
        try:
            shutil.rmtree(directory)
        except OSError as exc:
            logger.warning("Failed to remove directory %s: %s", directory, exc)
