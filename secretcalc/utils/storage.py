"""Voice note blob storage on local disk."""

import re
import secrets
import time
from pathlib import Path

from secretcalc.config import settings

VOICE_URL_PATH = "/uploads/voice"

_SAFE_EXT = re.compile(r"^\.[A-Za-z0-9]{1,8}$")


def voice_filename(original_name: str | None) -> str:
    """Stored name: ``<millis>_<hex><ext>``; the extension is kept only if it looks sane."""
    ext = Path(original_name or "").suffix
    if not _SAFE_EXT.match(ext):
        ext = ""
    return f"{int(time.time() * 1000)}_{secrets.token_hex(4)}{ext.lower()}"


def save_voice_note(data: bytes, original_name: str | None) -> str:
    """Write the upload into the voice directory and return its public URL."""
    name = voice_filename(original_name)
    settings.upload_dir.mkdir(parents=True, exist_ok=True)
    (settings.upload_dir / name).write_bytes(data)
    return f"{settings.base_url.rstrip('/')}{VOICE_URL_PATH}/{name}"
