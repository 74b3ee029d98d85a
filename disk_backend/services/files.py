from datetime import datetime, timezone
import logging
from pathlib import Path
import secrets

from disk_backend.errors import PayloadTooLargeError, ValidationError

LOGGER = logging.getLogger(__name__)

DEFAULT_MAX_BYTES = 10 * 1024 * 1024


def _safe_segment(value: str) -> str:
    cleaned = value.strip().strip("/\\")
    if not cleaned or any(part in {"", ".", ".."} for part in Path(cleaned).parts):
        raise ValidationError("Invalid upload directory")
    if Path(cleaned).is_absolute():
        raise ValidationError("Invalid upload directory")
    return cleaned


class FileStore:
    """Per-user upload directory on local disk.

    Stored paths are reported relative to the upload root, and a user can
    only delete files under their own directory.
    """

    def __init__(
        self,
        root: str,
        url_prefix: str = "/upload",
        max_bytes: int = DEFAULT_MAX_BYTES,
    ) -> None:
        self._root = Path(root).resolve()
        self._url_prefix = url_prefix.rstrip("/")
        self._max_bytes = max_bytes

    @property
    def max_bytes(self) -> int:
        return self._max_bytes

    def save(
        self,
        username: str,
        filename: str,
        content: bytes,
        subdir: str | None = None,
    ) -> dict:
        if not filename:
            raise ValidationError("No file was uploaded")
        if len(content) > self._max_bytes:
            raise PayloadTooLargeError(
                f"File exceeds the {self._max_bytes} byte upload limit"
            )
        segments = [_safe_segment(username)]
        if subdir:
            segments.append(_safe_segment(subdir))
        target_dir = self._root.joinpath(*segments)
        target_dir.mkdir(parents=True, exist_ok=True)

        original = Path(filename).name
        ext = Path(original).suffix
        basename = Path(original).stem
        timestamp = datetime.now(timezone.utc).strftime("%Y-%m-%dT%H-%M-%S-%fZ")
        new_name = f"{basename}-{timestamp}-{10000 + secrets.randbelow(9000)}{ext}"
        target = target_dir / new_name
        target.write_bytes(content)
        LOGGER.info("Stored upload username=%s path=%s", username, target)
        return {
            "url": "/".join([self._url_prefix, *segments, new_name]),
            "path": "/".join([*segments, new_name]),
            "name": original,
            "ext": ext,
        }

    def resolve(self, file_path: str) -> Path:
        return (self._root / file_path).resolve()

    def delete(self, username: str, file_path: str) -> bool:
        user_root = self._root / _safe_segment(username)
        target = self.resolve(file_path)
        if user_root not in target.parents:
            LOGGER.warning(
                "Refused delete outside user directory username=%s path=%s",
                username,
                file_path,
            )
            return False
        if not target.is_file():
            return False
        try:
            target.unlink()
        except OSError as exc:
            LOGGER.error("Failed to delete upload path=%s error=%s", file_path, exc)
            return False
        return True
