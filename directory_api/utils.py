import re
from datetime import datetime, timezone
from typing import Optional

from passlib.hash import pbkdf2_sha256

from . import config


def utc_now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


_FRACTION_RE = re.compile(r"\.(\d+)")

def parse_timestamp(value: Optional[str]) -> Optional[datetime]:
    """Parse ISO-8601/RFC 3339 text (trailing Z, nanoseconds) into an aware datetime."""
    if not value:
        return None
    text = value.strip().replace("Z", "+00:00").replace(" ", "T", 1)
    # Firestore sends up to nine fractional digits
    text = _FRACTION_RE.sub(lambda m: "." + m.group(1)[:6].ljust(6, "0"), text, count=1)
    parsed = datetime.fromisoformat(text)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


# --- Passwords ---

def hash_password(password: str, iterations: Optional[int] = None) -> str:
    """Return a '$pbkdf2-sha256$rounds$salt$hash' string for storage."""
    rounds = iterations or config.PASSWORD_HASH_ITERATIONS
    return pbkdf2_sha256.using(rounds=rounds).hash(password)


# --- Files ---

FILE_TYPES_BY_EXTENSION = {
    "pdf": "application/pdf",
    "doc": "application/msword",
    "docx": "application/msword",
    "xls": "application/vnd.ms-excel",
    "xlsx": "application/vnd.ms-excel",
    "png": "image/png",
    "jpg": "image/jpeg",
    "jpeg": "image/jpeg",
    "gif": "image/gif",
    "zip": "application/zip",
}

def file_extension(file_name: str) -> str:
    """Text after the last dot; the whole name when there is no dot."""
    return file_name.rsplit(".", 1)[-1]

def file_type_from_name(file_name: str) -> str:
    """Best-effort MIME type from the extension, for blobs stored without metadata."""
    if "." not in file_name:
        return "application/octet-stream"
    return FILE_TYPES_BY_EXTENSION.get(file_extension(file_name).lower(), "application/octet-stream")

def format_megabytes(size_bytes: int) -> str:
    return f"{size_bytes / 1024 / 1024:.2f} MB"

def format_file_size(size_bytes: int) -> str:
    if not size_bytes:
        return "0 B"
    units = ["B", "KB", "MB", "GB"]
    value = float(size_bytes)
    i = 0
    while value >= 1024 and i < len(units) - 1:
        value /= 1024
        i += 1
    # 1.50 -> "1.5", 2.00 -> "2"
    return f"{round(value, 2):g} {units[i]}"
