"""
Version constraint model for depmigrate.

A :class:`VersionRange` is the only constraint shape: "any" is a range
without bounds and a single version is a range whose inclusive bounds meet.
Package versions are semantic versions (:class:`semver.Version`), so
prereleases such as ``1.3.0-nullsafety.3`` sort before their release and
render back exactly as published.

Supported textual forms (the subset pub-style manifests use)::

    any            every version
    1.2.3          exactly 1.2.3
    ^1.2.3         >=1.2.3 <2.0.0   (^0.2.3 -> >=0.2.3 <0.3.0)
    >=1.0.0 <2.0.0 any combination of >=, >, <=, < bounds
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import List, Optional, Tuple, Union

from semver import Version

VersionLike = Union[str, Version]

_BOUND_RE = re.compile(r"^(>=|<=|>|<)?\s*(\S+)$")


class InvalidConstraint(ValueError):
    """Raised when a constraint string cannot be parsed."""


def parse_version(value: VersionLike) -> Version:
    """Parse a semantic version; missing minor or patch numbers count as 0.

    Raises:
        InvalidConstraint: *value* is not a semantic version.
    """
    if isinstance(value, Version):
        return value
    try:
        return Version.parse(str(value).strip(), optional_minor_and_patch=True)
    except (TypeError, ValueError) as exc:
        raise InvalidConstraint(f"Invalid version: {value!r}") from exc


def is_prerelease(version: Version) -> bool:
    return version.prerelease is not None


@dataclass(frozen=True)
class VersionRange:
    """A contiguous set of versions between two optional bounds.

    Attributes:
        min: Lower bound, or ``None`` for no lower bound.
        max: Upper bound, or ``None`` for no upper bound.
        include_min: Whether ``min`` itself is allowed.
        include_max: Whether ``max`` itself is allowed.
        caret: Render as ``^min``; only meaningful for ranges built by
            :func:`compatible_with`. Ignored by comparisons.
    """

    min: Optional[Version] = None
    max: Optional[Version] = None
    include_min: bool = False
    include_max: bool = False
    caret: bool = field(default=False, compare=False)

    # ------------------------------------------------------------------
    # Shape
    # ------------------------------------------------------------------

    @property
    def is_any(self) -> bool:
        return self.min is None and self.max is None

    @property
    def is_empty(self) -> bool:
        if self.min is None or self.max is None:
            return False
        if self.min > self.max:
            return True
        return self.min == self.max and not (self.include_min and self.include_max)

    @property
    def is_single_version(self) -> bool:
        return (
            self.min is not None
            and self.min == self.max
            and self.include_min
            and self.include_max
        )

    # ------------------------------------------------------------------
    # Set algebra
    # ------------------------------------------------------------------

    def allows(self, version: VersionLike) -> bool:
        """Return True if *version* lies inside this range."""
        version = parse_version(version)
        if self.min is not None:
            if version < self.min or (version == self.min and not self.include_min):
                return False
        if self.max is not None:
            if version > self.max or (version == self.max and not self.include_max):
                return False
        return True

    def allows_all(self, other: "VersionRange") -> bool:
        """Return True if every version allowed by *other* is allowed here."""
        if other.is_empty:
            return True
        if self.is_empty:
            return False

        if self.min is not None:
            if other.min is None or other.min < self.min:
                return False
            if other.min == self.min and other.include_min and not self.include_min:
                return False

        if self.max is not None:
            if other.max is None or other.max > self.max:
                return False
            if other.max == self.max and other.include_max and not self.include_max:
                return False

        return True

    def is_equivalent(self, other: "VersionRange") -> bool:
        """Return True if both ranges admit exactly the same versions."""
        return self.allows_all(other) and other.allows_all(self)

    def intersect(self, other: "VersionRange") -> "VersionRange":
        """Return the range of versions allowed by both constraints."""
        # Nested ranges keep their own rendering (e.g. a caret)
        if self.allows_all(other):
            return other
        if other.allows_all(self):
            return self

        low, include_low = self.min, self.include_min
        if other.min is not None and (
            low is None
            or other.min > low
            or (other.min == low and not other.include_min)
        ):
            low, include_low = other.min, other.include_min

        high, include_high = self.max, self.include_max
        if other.max is not None and (
            high is None
            or other.max < high
            or (other.max == high and not other.include_max)
        ):
            high, include_high = other.max, other.include_max

        return VersionRange(low, high, include_low, include_high)

    # ------------------------------------------------------------------
    # Rendering
    # ------------------------------------------------------------------

    def __str__(self) -> str:
        if self.is_any:
            return "any"
        if self.is_empty:
            return "<empty>"
        if self.is_single_version:
            return str(self.min)
        if self.caret and self.min is not None:
            return f"^{self.min}"

        parts: List[str] = []
        if self.min is not None:
            parts.append(f"{'>=' if self.include_min else '>'}{self.min}")
        if self.max is not None:
            parts.append(f"{'<=' if self.include_max else '<'}{self.max}")
        return " ".join(parts)


#: The constraint allowing every version.
ANY = VersionRange()


def exact(version: VersionLike) -> VersionRange:
    """Return the range allowing only *version*."""
    parsed = parse_version(version)
    return VersionRange(parsed, parsed, include_min=True, include_max=True)


def at_least(version: VersionLike) -> VersionRange:
    """Return ``>=version`` with no upper bound."""
    return VersionRange(min=parse_version(version), include_min=True)


def next_breaking(version: VersionLike) -> Version:
    """Return the first version considered incompatible with *version*.

    For ``1.0.0`` and later that is the next major release; below ``1.0.0``
    the minor number is the breaking component.
    """
    parsed = parse_version(version)
    if parsed.major > 0:
        return Version(parsed.major + 1)
    return Version(0, parsed.minor + 1)


def compatible_with(version: VersionLike) -> VersionRange:
    """Return the conventional safe-upgrade range for *version*.

    The range includes *version* and stops before :func:`next_breaking`.

    Example::

        >>> str(compatible_with("2.3.1"))
        '^2.3.1'
        >>> compatible_with("2.3.1").allows("2.9.0")
        True
    """
    parsed = parse_version(version)
    return VersionRange(
        min=parsed,
        max=next_breaking(parsed),
        include_min=True,
        include_max=False,
        caret=True,
    )


def parse_constraint(text: Optional[str]) -> VersionRange:
    """Parse a constraint string.

    ``None`` and the empty string mean "any", matching a manifest entry
    that only names the package.

    Raises:
        InvalidConstraint: The text is not a supported constraint.
    """
    if text is None:
        return ANY

    source = str(text).strip()
    if not source or source == "any":
        return ANY

    if source.startswith("^"):
        return compatible_with(source[1:].strip())

    result = ANY
    for operator, version in _tokenize(source):
        if not operator:
            bound = exact(version)
        elif operator == ">=":
            bound = VersionRange(min=version, include_min=True)
        elif operator == ">":
            bound = VersionRange(min=version)
        elif operator == "<=":
            bound = VersionRange(max=version, include_max=True)
        else:
            bound = VersionRange(max=version)
        result = result.intersect(bound)

    return result


def _tokenize(source: str) -> List[Tuple[str, Version]]:
    # Glue "> = 1.0" style spacing back onto its operator first
    normalized = re.sub(r"(>=|<=|>|<)\s+", r"\1", source)
    tokens: List[Tuple[str, Version]] = []
    for raw in normalized.split():
        match = _BOUND_RE.match(raw)
        if match is None:
            raise InvalidConstraint(f"Invalid constraint: {source!r}")
        operator, version = match.groups()
        tokens.append((operator or "", parse_version(version)))

    if not tokens:
        raise InvalidConstraint(f"Invalid constraint: {source!r}")
    if any(not op for op, _ in tokens) and len(tokens) > 1:
        raise InvalidConstraint(
            f"A bare version cannot be combined with other bounds: {source!r}"
        )
    return tokens
