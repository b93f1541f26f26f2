"""Zone id derivation.

A zone id is derived from its human-supplied name: lower-cased, every run
of characters outside ``[a-z0-9]`` collapsed to a single ``_``, and
leading/trailing separators stripped.

INVARIANT: derivation is deterministic. Two names that derive the same id
claim the same key, which is what makes duplicate-id races detectable.
"""

from __future__ import annotations

import re

ZONE_ID_PATTERN = re.compile(r"^[a-z0-9]+(?:_[a-z0-9]+)*$")

_SEPARATOR_RUN = re.compile(r"[^a-z0-9]+")


def derive_zone_id(name: str) -> str:
    """Return the stable zone id for *name*.

    Examples:
        >>> derive_zone_id("North Base")
        'north_base'
        >>> derive_zone_id("  My Cool Zone!! ")
        'my_cool_zone'

    Returns an empty string when *name* has no usable characters; callers
    treat that as a validation failure.
    """
    slug = _SEPARATOR_RUN.sub("_", name.lower())
    return slug.strip("_")


def validate_zone_id(zone_id: str) -> bool:
    """Check whether *zone_id* has the shape :func:`derive_zone_id` produces."""
    return ZONE_ID_PATTERN.match(zone_id) is not None
