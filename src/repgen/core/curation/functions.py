"""
Helpers for functional annotations.

A function string may contain several roles joined by " / " (multifunctional
protein), " @ " (domains) or "; " (ambiguous assignment), and may end in a
comment introduced by "#" or "!".
"""

from __future__ import annotations

import re

ROLE_SEPARATOR = re.compile(r"\s+/\s+|\s+@\s+|\s*;\s+")
COMMENT_PATTERN = re.compile(r"\s*[#!].*$")
WHITESPACE = re.compile(r"\s+")

# Products that name a small-subunit ribosomal RNA
SSU_RRNA_PATTERN = re.compile(
    r"SSU\s+rRNA|Small\s+Subunit\s+(?:Ribosomal\s+r)?RNA|ssuRNA|16S\s+(?:r(?:ibosomal\s+)?)?RNA",
    re.IGNORECASE,
)


def roles_of_function(function: str | None) -> list[str]:
    """Split a function string into its roles.

    Example:
        >>> roles_of_function("Role A / Role B # note")
        ['Role A', 'Role B']
    """
    if not function:
        return []
    stripped = COMMENT_PATTERN.sub("", function).strip()
    return [role for role in ROLE_SEPARATOR.split(stripped) if role]


def normalize_role(role: str) -> str:
    """Case- and whitespace-insensitive key for comparing role names."""
    return WHITESPACE.sub(" ", role.strip()).lower()


def has_role(function: str | None, role: str) -> bool:
    """True if one of the roles of ``function`` is exactly ``role``."""
    key = normalize_role(role)
    return any(normalize_role(r) == key for r in roles_of_function(function))


def is_ssu_rrna(product: str | None) -> bool:
    return bool(product) and SSU_RRNA_PATTERN.search(product) is not None
