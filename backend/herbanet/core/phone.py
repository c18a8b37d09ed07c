# backend/herbanet/core/phone.py
from __future__ import annotations

import re

from herbanet.core.errors import ValidationError

# Indonesian mobile numbers: national part starts with 8, 9..13 digits long.
_NATIONAL_MOBILE_RE = re.compile(r"^8\d{8,12}$")
_SEPARATORS_RE = re.compile(r"[\s.\-()]")


def normalize_indonesian_phone(value) -> str:
    """
    Normalize 08xx / 8xx / 62xx / +62xx (with spaces, dots or dashes) to 62XXXXXXXXXX.
    Raises ValidationError for anything that is not an Indonesian mobile number.
    """
    if not isinstance(value, str) or not value.strip():
        raise ValidationError("Phone number is required")

    v = _SEPARATORS_RE.sub("", value.strip())
    if v.startswith("+"):
        v = v[1:]
    if not v.isdigit():
        raise ValidationError("Invalid Indonesian phone number format")

    if v.startswith("62"):
        national = v[2:]
    elif v.startswith("0"):
        national = v[1:]
    else:
        national = v

    if not _NATIONAL_MOBILE_RE.match(national):
        raise ValidationError("Invalid Indonesian phone number format")
    return f"62{national}"
