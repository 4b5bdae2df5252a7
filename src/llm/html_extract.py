# src/llm/html_extract.py — v1
"""Recover the HTML document from free-form backend output."""

from __future__ import annotations

import re

_FENCED_HTML = re.compile(r"```html\s*\n?(.*?)```", re.IGNORECASE | re.DOTALL)
_LOOKS_LIKE_HTML = re.compile(r"<!doctype html|<html|<body|<table|<div", re.IGNORECASE)
_TAG = re.compile(r"<[^>]+>")


def extract_html(text: str) -> str:
    """Return the HTML part of ``text``.

    In order of preference: the first fenced ```html block, the whole text
    when it already looks like a document, only the lines that carry tags,
    and finally the stripped text itself.
    """
    if not text:
        return ""

    fenced = _FENCED_HTML.search(text)
    if fenced:
        return fenced.group(1).strip()

    stripped = text.strip()
    if _LOOKS_LIKE_HTML.search(stripped):
        return stripped

    tagged = [line for line in stripped.splitlines() if _TAG.search(line)]
    if tagged:
        return "\n".join(tagged).strip()

    return stripped
