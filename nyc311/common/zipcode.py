"""Incident zip code normalisation."""

from __future__ import annotations

import re

_NON_DIGIT_RE = re.compile(r"[^0-9]")


def normalise_zip(raw: str | None, *, length: int = 5) -> str | None:
    """Return the digits of ``raw`` when exactly ``length`` remain, else None.

    Zips are opaque identifiers: the value stays a string so leading zeros
    survive.
    """
    if raw is None:
        return None
    digits = _NON_DIGIT_RE.sub("", str(raw))
    if len(digits) != length:
        return None
    return digits
