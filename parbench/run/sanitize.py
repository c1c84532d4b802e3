"""Rewriting of non-finite numeric literals in worker output."""

import re

# Signed or bare NaN / Infinity / inf, matched on word boundaries only so that
# identifiers such as "info" or "nanos" are left alone.
_NON_FINITE_TOKEN = re.compile(
    r"(?<![\w.])[+-]?(?:nan|infinity|inf)\b",
    re.IGNORECASE,
)


def sanitize_numeric_tokens(text: str) -> str:
    """
    Replace non-finite numeric tokens with ``0`` so the text becomes valid JSON.

    C workers print ``nan`` / ``inf`` / ``-inf`` through printf when a ratio
    has a zero denominator, and JSON has no literal for those values.

    Args:
        text: Raw worker stdout

    Returns:
        The same text with every non-finite token replaced by ``0``
    """
    return _NON_FINITE_TOKEN.sub("0", text)
