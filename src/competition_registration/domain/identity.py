"""Participant identity normalization and registration id generation."""

from __future__ import annotations

import re
import secrets
import string

_WHITESPACE = re.compile(r"\s+")
_REGISTRATION_ID_ALPHABET = string.ascii_uppercase + string.digits
REGISTRATION_ID_RANDOM_LENGTH = 8


def normalize_national_id(value: str) -> str:
    """Strip every whitespace character from a national ID number."""

    return _WHITESPACE.sub("", value)


def normalize_email(value: str) -> str:
    return value.strip().lower()


def normalize_mobile(value: str) -> str:
    return _WHITESPACE.sub("", value)


def generate_registration_id(prefix: str) -> str:
    """Build a human-readable registration id such as ``REG-7Q2K9XA4``."""

    random_part = "".join(
        secrets.choice(_REGISTRATION_ID_ALPHABET)
        for _ in range(REGISTRATION_ID_RANDOM_LENGTH)
    )
    return f"{prefix.strip().upper()}-{random_part}"


def storage_folder_name(participant_name: str) -> str:
    """Folder-safe version of a participant name, e.g. ``John_Doe``."""

    collapsed = _WHITESPACE.sub("_", participant_name.strip())
    safe = re.sub(r"[^A-Za-z0-9_-]", "", collapsed)
    return safe or "participant"
