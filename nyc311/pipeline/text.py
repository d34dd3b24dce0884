"""Text cleanup and per-field casing."""

from __future__ import annotations

import re

_CONTROL_RE = re.compile(r"[\x00-\x08\x0b\x0c\x0e-\x1f\x7f]")
_WHITESPACE_RE = re.compile(r"\s+")
_WORD_RE = re.compile(r"[^\W_]+(?:'[^\W_]+)*")


def clean_text(value: str | None) -> str | None:
    if value is None:
        return None
    cleaned = _CONTROL_RE.sub("", value)
    cleaned = _WHITESPACE_RE.sub(" ", cleaned).strip()
    return cleaned or None


def _title_word(word: str) -> str:
    first = word[:1]
    upper = first.upper()
    # "ß".upper() is "SS"; a multi-letter head would not survive a second pass.
    head = upper if len(upper) == 1 else first
    return head + word[1:].lower()


def title_case(value: str) -> str:
    # str.title() would turn "don't" into "Don'T".
    return _WORD_RE.sub(lambda m: _title_word(m.group(0)), value)


def normalise_text_value(value: str | None, casing: str | None) -> str | None:
    cleaned = clean_text(value)
    if cleaned is None:
        return None
    if casing == "upper":
        return cleaned.upper()
    if casing == "title":
        return title_case(cleaned)
    return cleaned


def normalise_text_fields(rows: list[dict], text_config: dict) -> list[dict]:
    casing = {name: "upper" for name in text_config.get("upper_fields", [])}
    casing.update({name: "title" for name in text_config.get("title_fields", [])})

    out: list[dict] = []
    for row in rows:
        normalised = dict(row)
        for key, value in row.items():
            if isinstance(value, str):
                normalised[key] = normalise_text_value(value, casing.get(key))
        out.append(normalised)
    return out
