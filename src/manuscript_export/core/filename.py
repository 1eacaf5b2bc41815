"""Default file names for exports."""

import re
from datetime import datetime


def export_timestamp(now: datetime | None = None) -> str:
    """Timestamp as ``yy-mm-dd_hh-mm``."""
    now = now or datetime.now()
    return now.strftime("%y-%m-%d_%H-%M")


def sanitize_base_name(name: str) -> str:
    """Replace runs of non-alphanumerics with underscores."""
    cleaned = re.sub(r"[^a-z0-9]+", "_", name.strip(), flags=re.IGNORECASE)
    return cleaned.strip("_") or "book"


def build_export_base_name(name: str, now: datetime | None = None) -> str:
    return f"{sanitize_base_name(name)}_{export_timestamp(now)}"
