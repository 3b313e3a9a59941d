#!/usr/bin/env python3
"""Frontmatter value comparison.

A configured or actual frontmatter value is either a single scalar or a
list of scalars. Both sides are reduced to a FrontmatterValue, a tuple of
string renderings, and compared with ``equals_any``: they match when any
element of one equals any element of the other.

Example:
    >>> FrontmatterValue.of("true").equals_any(FrontmatterValue.of(["true", "x"]))
    True
"""

from dataclasses import dataclass
from datetime import date
from typing import Any, Mapping, Optional, Tuple


def to_comparable(value: Any) -> Optional[str]:
    """Render a scalar the way frontmatter values are compared.

    Booleans render as ``true``/``false`` and integral floats drop their
    fractional part, so ``True`` equals ``"true"`` and ``1.0`` equals ``"1"``.
    Non-scalars (None, mappings, nested lists) return None.
    """
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    if isinstance(value, (str, int, float)):
        return str(value)
    if isinstance(value, date):
        return value.isoformat()
    return None


@dataclass(frozen=True)
class FrontmatterValue:
    """A scalar or list of scalars in comparable form."""

    items: Tuple[str, ...]
    is_list: bool = False

    @classmethod
    def of(cls, raw: Any) -> Optional["FrontmatterValue"]:
        """Wrap a raw value; returns None when it can never match."""
        if isinstance(raw, (list, tuple)):
            items = tuple(s for s in (to_comparable(v) for v in raw) if s is not None)
            return cls(items=items, is_list=True)
        rendered = to_comparable(raw)
        if rendered is None:
            return None
        return cls(items=(rendered,))

    def equals_any(self, other: "FrontmatterValue") -> bool:
        return any(mine == theirs for mine in self.items for theirs in other.items)


def first_matching_key(
    expected: Mapping[str, Any], actual: Mapping[str, Any]
) -> Optional[str]:
    """Find the first configured key whose value matches the document.

    Keys are OR'd: one matching key is enough.

    Args:
        expected: Configured criteria (key -> scalar or list of scalars)
        actual: Document frontmatter

    Returns:
        The matching key, or None
    """
    for key, raw_expected in expected.items():
        if key not in actual:
            continue
        wanted = FrontmatterValue.of(raw_expected)
        found = FrontmatterValue.of(actual[key])
        if wanted is None or found is None:
            continue
        if wanted.equals_any(found):
            return key
    return None
