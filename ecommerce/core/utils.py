"""Core utility functions for the application"""

import re
from typing import Optional

_NON_KEY_CHARS = re.compile(r"[^a-z0-9]+")


def normalize_to_snake_case(value: str) -> str:
    """
    Normalize a free-form label into a lowercase snake_case key.

    Args:
        value: Label such as "Sleeve Length" or " Color-Name "

    Returns:
        str: Normalized key (e.g. "sleeve_length", "color_name")
    """
    lowered = value.strip().lower()
    return _NON_KEY_CHARS.sub("_", lowered).strip("_")


def to_lower_trimmed(value: str) -> str:
    """Lowercase and trim an option value ("  Red " -> "red")."""
    return value.strip().lower()


def display_name_or_default(display_name: Optional[str], fallback: str) -> str:
    """
    Return the display name when set, otherwise the raw name.

    Args:
        display_name: Optional human readable label
        fallback: Value to use when the display name is empty

    Returns:
        str: The label to show to clients
    """
    if display_name and display_name.strip():
        return display_name.strip()
    return fallback
