from typing import Optional

from fastapi import Header


def acting_user(x_user: Optional[str] = Header(None)) -> str:
    """Name written into audit rows; there is no login, callers identify
    themselves with the X-User header."""
    return (x_user or "").strip() or "system"
