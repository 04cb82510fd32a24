import html
import re
import secrets
import uuid
from datetime import datetime, timezone
from typing import Optional
import bleach


def sanitize_input(value: Optional[str]) -> str:
    """Sanitize a user-supplied string before it is stored and rendered.

    - Strips HTML tags using bleach.clean(..., strip=True), then unescapes the
      entities bleach adds so "&" and "<" are stored as typed; output escaping
      is left to the renderer
    - Removes NULL bytes and collapses runs of whitespace
    - Trims whitespace
    """
    if value is None:
        return ""
    val = value.replace("\x00", "")
    val = html.unescape(bleach.clean(val, strip=True))
    val = re.sub(r"\s+", " ", val)
    return val.strip()


def new_id() -> str:
    return uuid.uuid4().hex


def fake_chain_hash() -> str:
    # Looks like an EVM transaction hash; nothing is written to a ledger.
    return "0x" + secrets.token_hex(20)


def utcnow() -> datetime:
    return datetime.now(timezone.utc)
