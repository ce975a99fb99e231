"""Keyring-backed password storage for vCloud Director logins.

Passwords are stored ONLY in the OS keyring, never in the JSON store or .env.
"""

from __future__ import annotations

from typing import Optional

import keyring
from keyring.errors import PasswordDeleteError

SERVICE_NAME = "vapp-props"


def _key(url: str, login: str) -> str:
    return f"{login.strip()}@{url.strip().rstrip('/')}"


def save_password(url: str, login: str, password: str) -> None:
    """Store the password for ``login`` (user@org) at ``url``."""
    if not url or not login:
        raise ValueError("URL and user are required")
    keyring.set_password(SERVICE_NAME, _key(url, login), password)


def get_password(url: str, login: str) -> Optional[str]:
    """Lookup the stored password, or None."""
    if not url or not login:
        return None
    return keyring.get_password(SERVICE_NAME, _key(url, login))


def forget_password(url: str, login: str) -> bool:
    """Remove the stored password. Returns False if there was none."""
    try:
        keyring.delete_password(SERVICE_NAME, _key(url, login))
    except PasswordDeleteError:
        return False
    return True
