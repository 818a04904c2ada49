"""
Insight marker contract for remote activity descriptions.

The writer (format_insight_comment) and the detector (has_insight_marker)
share the constants below; changing the label format means changing only
this module.
"""

from __future__ import annotations

INSIGHT_LABEL = "AI Insights"
INSIGHT_MARKER = f"🤖 {INSIGHT_LABEL}"
# Older comments may have lost the emoji (e.g. edited on a client without it)
LEGACY_MARKER = f"{INSIGHT_LABEL} ("
SEPARATOR = "\n\n---\n\n"


def format_insight_comment(model: str, confidence: float, insight: str) -> str:
    """Render the display block: marker, model, confidence percentage, insight text."""
    return f"{INSIGHT_MARKER} ({model}, {confidence * 100:.0f}% confidence):\n{insight}"


def has_insight_marker(description: str | None) -> bool:
    """True when the description already carries an insight block."""
    if not description:
        return False
    return INSIGHT_MARKER in description or LEGACY_MARKER in description


def _marker_index(text: str) -> int | None:
    for marker in (INSIGHT_MARKER, LEGACY_MARKER):
        if marker in text:
            return text.index(marker)
    return None


def strip_insight_blocks(description: str) -> str:
    """
    Remove every previously inserted insight block and trim the result.

    A block runs from the marker to the next separator or the end of text;
    separators left dangling by the removal are dropped too.
    """
    kept: list[str] = []
    for part in description.split(SEPARATOR):
        start = _marker_index(part)
        if start is not None:
            part = part[:start]
        part = part.strip()
        if part:
            kept.append(part)
    return SEPARATOR.join(kept)


def append_insight(description: str, comment: str) -> str:
    """Append ``comment``, separated by the divider when the description is non-empty."""
    separator = SEPARATOR if description else ""
    return f"{description}{separator}{comment}"
