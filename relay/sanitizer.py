"""Inbound text escaping."""
from __future__ import annotations


def sanitize(text: str) -> str:
    """Escape ``<`` and ``>`` in *text*.

    Only angle brackets are touched; quotes and ampersands pass through
    unchanged so the output matches what existing clients already render.
    """
    return text.replace("<", "&lt;").replace(">", "&gt;")


__all__ = ["sanitize"]
