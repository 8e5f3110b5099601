from __future__ import annotations

import secrets
import string
from typing import Callable

SESSION_ID_LENGTH = 32
SESSION_ID_ALPHABET = string.ascii_letters + string.digits


def random_token(length: int = SESSION_ID_LENGTH) -> str:
    return "".join(secrets.choice(SESSION_ID_ALPHABET) for _ in range(length))


def generate_session_id(is_taken: Callable[[str], bool] | None = None) -> str:
    """Return a fresh session id that ``is_taken`` does not report as in use.

    Uniqueness only holds against whatever ``is_taken`` observes, so callers
    that need it to be atomic with an insert must hold their own lock.
    """
    while True:
        candidate = random_token()
        if is_taken is None or not is_taken(candidate):
            return candidate
