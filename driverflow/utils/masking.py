"""Helpers that hide identifiers before they leave the process."""

from __future__ import annotations

import re
from typing import Optional

_NON_DIGITS = re.compile(r"\D")


def mask_ssn(ssn: Optional[str]) -> Optional[str]:
    """Show only the last four digits of a nine digit SSN."""
    if not ssn:
        return None
    cleaned = _NON_DIGITS.sub("", ssn)
    if len(cleaned) == 9:
        return f"***-**-{cleaned[-4:]}"
    return ssn


def mask_ein(ein: Optional[str]) -> Optional[str]:
    """Show only the last four digits of a nine digit EIN."""
    if not ein:
        return None
    cleaned = _NON_DIGITS.sub("", ein)
    if len(cleaned) == 9:
        return f"**-****{cleaned[-4:]}"
    return ein
