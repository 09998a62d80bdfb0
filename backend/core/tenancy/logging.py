from __future__ import annotations

import logging
import re
from typing import Any


_PAN_RE = re.compile(r"(?<![A-Za-z0-9])[A-Z]{5}\d{4}[A-Z](?![A-Za-z0-9])")
_AADHAAR_RE = re.compile(r"(?<!\d)(?:\d{12}|\d{4}[ -]\d{4}[ -]\d{4})(?!\d)")


def mask_pan_aadhaar(text: str) -> str:
    """Mask PAN/Aadhaar patterns in a string.

    No characters of the original identifier are kept in logs.
    """

    if not text:
        return text

    text = _PAN_RE.sub("***PAN***", text)
    text = _AADHAAR_RE.sub("***AADHAAR***", text)
    return text


class MaskPANAadhaarFilter(logging.Filter):
    """Logging filter to mask PAN/Aadhaar numbers in log messages."""

    def filter(self, record: logging.LogRecord) -> bool:
        try:
            message = record.getMessage()
        except Exception:  # pragma: no cover
            message = str(getattr(record, "msg", ""))

        masked = mask_pan_aadhaar(str(message))

        # Replace the formatted message and clear args to avoid double formatting.
        record.msg = masked
        record.args = ()

        for key in ("pan", "pan_number", "aadhaar", "aadhaar_number"):
            if hasattr(record, key):
                value: Any = getattr(record, key)
                if isinstance(value, str):
                    setattr(record, key, mask_pan_aadhaar(value))

        return True
