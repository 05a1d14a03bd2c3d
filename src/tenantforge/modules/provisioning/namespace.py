"""Slug validation and namespace derivation."""

import re
from collections.abc import Collection, Iterable

from tenantforge.core.constants import MAX_NAMESPACE_LENGTH, NAMESPACE_PREFIX, SLUG_PATTERN
from tenantforge.core.errors import ValidationError


_SLUG_RE = re.compile(SLUG_PATTERN)


def validate_slug(slug: str, reserved: Iterable[str]) -> str:
    """Check a requested slug against the pattern and the reserved words.

    Raises:
        ValidationError: With error code ``invalid_slug``
    """
    if not _SLUG_RE.fullmatch(slug):
        raise ValidationError(
            "Slug must be 3-30 characters of lowercase letters, digits and hyphens",
            error_code="invalid_slug",
            errors=[{"field": "slug", "message": "Invalid format"}],
        )
    if slug in set(reserved):
        raise ValidationError(
            "Slug is reserved",
            error_code="invalid_slug",
            errors=[{"field": "slug", "message": "Reserved word"}],
        )
    return slug


def namespace_base(slug: str) -> str:
    """Deterministic schema name for a slug, before collision suffixes."""
    return f"{NAMESPACE_PREFIX}{slug.replace('-', '_')}"


def derive_namespace(slug: str, taken: Collection[str]) -> str:
    """Pick the first namespace for ``slug`` not present in ``taken``.

    ``taken`` holds every namespace ever allocated, so a namespace freed by
    a deleted tenant is skipped and a numeric suffix is appended instead.

    >>> derive_namespace("demo-1", set())
    't_demo_1'
    >>> derive_namespace("demo-1", {"t_demo_1", "t_demo_1_2"})
    't_demo_1_3'
    """
    base = namespace_base(slug)
    if base not in taken:
        return base

    suffix = 2
    while True:
        candidate = f"{base}_{suffix}"
        if len(candidate) > MAX_NAMESPACE_LENGTH:
            raise ValueError(f"Namespace for {slug!r} exceeds identifier length")
        if candidate not in taken:
            return candidate
        suffix += 1
