"""LF-Tag pairs and tag sets.

A TagSet is an ordered sequence of (key, values) pairs. The order callers
supply is kept for display, but equality is set-based: two tag sets are
equal when they map the same keys to the same sets of values, regardless
of pair order or value order. ``normalize`` returns the canonical order
used for identity hashing.
"""

from __future__ import annotations

import unicodedata
from dataclasses import dataclass
from typing import Any, Iterable, Iterator, Mapping

from lftagops.core.errors import (
    DuplicateTagKeyError,
    EmptyValueSetError,
    InvalidTagKeyError,
    InvalidTagValueError,
    TooManyTagsError,
    TooManyTagValuesError,
    ValidationError,
)

MAX_TAG_KEY_LENGTH = 128
MAX_TAG_VALUE_LENGTH = 255
MAX_TAGS_PER_SET = 50

# Besides Unicode letters, separators and numbers.
_VALUE_PUNCTUATION = frozenset("_.:*/=+-@%")


def _is_allowed_value_char(ch: str) -> bool:
    return unicodedata.category(ch)[0] in ("L", "Z", "N") or ch in _VALUE_PUNCTUATION


def validate_tag_value(value: str) -> None:
    """Raise InvalidTagValueError if value would be rejected by Lake Formation."""
    if not value:
        raise InvalidTagValueError("Tag values must be non-empty strings.")
    if len(value) > MAX_TAG_VALUE_LENGTH:
        raise InvalidTagValueError(
            f"Tag value '{value[:32]}...' exceeds {MAX_TAG_VALUE_LENGTH} characters."
        )
    bad = sorted({ch for ch in value if not _is_allowed_value_char(ch)})
    if bad:
        raise InvalidTagValueError(
            f"Tag value '{value}' contains disallowed character(s): {''.join(bad)}"
        )


@dataclass(frozen=True, eq=False)
class TagPair:
    """
    A single LF-Tag key with one or more values.

    Attributes:
        key: LF-Tag key (1..128 characters).
        values: Tag values in caller order, duplicates removed.
        catalog_id: Optional catalog holding the LF-Tag definition. Not
            part of equality; the service fills it in on reads.
    """

    key: str
    values: tuple[str, ...]
    catalog_id: str | None = None

    def __post_init__(self) -> None:
        if isinstance(self.values, str):
            raise TypeError("TagPair values must be an iterable of strings, not a str.")
        object.__setattr__(self, "values", tuple(dict.fromkeys(self.values)))

    @property
    def value_set(self) -> frozenset[str]:
        return frozenset(self.values)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, TagPair):
            return NotImplemented
        return self.key == other.key and self.value_set == other.value_set

    def __hash__(self) -> int:
        return hash((self.key, self.value_set))

    def validate(self, *, max_values: int | None = None) -> None:
        if not self.key or len(self.key) > MAX_TAG_KEY_LENGTH:
            raise InvalidTagKeyError(
                f"Tag key '{self.key}' must be 1 to {MAX_TAG_KEY_LENGTH} characters."
            )
        if not self.values:
            raise EmptyValueSetError(f"Tag '{self.key}' must have at least one value.")
        if max_values is not None and len(self.values) > max_values:
            raise TooManyTagValuesError(
                f"Tag '{self.key}' has {len(self.values)} values; "
                f"at most {max_values} can be assigned to a resource."
            )
        for value in self.values:
            validate_tag_value(value)

    def canonical(self) -> TagPair:
        return TagPair(self.key, tuple(sorted(self.values)), self.catalog_id)

    def to_request(self) -> dict[str, Any]:
        payload: dict[str, Any] = {"TagKey": self.key, "TagValues": list(self.values)}
        if self.catalog_id:
            payload["CatalogId"] = self.catalog_id
        return payload

    @classmethod
    def from_response(cls, item: Mapping[str, Any]) -> TagPair:
        return cls(
            key=item.get("TagKey", ""),
            values=tuple(item.get("TagValues") or ()),
            catalog_id=item.get("CatalogId"),
        )

    def __str__(self) -> str:
        return f"{self.key}={','.join(self.values)}"


@dataclass(frozen=True, eq=False)
class TagSet:
    """An ordered collection of TagPairs with set-based equality."""

    pairs: tuple[TagPair, ...] = ()

    def __post_init__(self) -> None:
        object.__setattr__(self, "pairs", tuple(self.pairs))

    @classmethod
    def of(cls, tags: Mapping[str, Iterable[str]]) -> TagSet:
        """Build a tag set from a ``{key: values}`` mapping."""
        return cls(tuple(TagPair(k, tuple(v)) for k, v in tags.items()))

    @classmethod
    def parse(cls, specs: Iterable[str]) -> TagSet:
        """
        Build a tag set from ``key=value[,value...]`` strings.

        Raises:
            ValidationError: If a spec lacks ``=``.
        """
        pairs: list[TagPair] = []
        for spec in specs:
            if "=" not in spec:
                raise ValidationError(f"Invalid tag '{spec}' (expected key=value[,value])")
            key, raw = spec.split("=", 1)
            values = tuple(v.strip() for v in raw.split(","))
            pairs.append(TagPair(key.strip(), values))
        return cls(tuple(pairs))

    @classmethod
    def from_response(cls, items: Iterable[Mapping[str, Any]] | None) -> TagSet:
        return cls(tuple(TagPair.from_response(i) for i in items or ()))

    def __iter__(self) -> Iterator[TagPair]:
        return iter(self.pairs)

    def __len__(self) -> int:
        return len(self.pairs)

    def __bool__(self) -> bool:
        return bool(self.pairs)

    def keys(self) -> list[str]:
        return [p.key for p in self.pairs]

    def as_dict(self) -> dict[str, frozenset[str]]:
        """Return ``{key: frozenset(values)}``; the form equality is defined on."""
        out: dict[str, frozenset[str]] = {}
        for p in self.pairs:
            out[p.key] = out.get(p.key, frozenset()) | p.value_set
        return out

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, TagSet):
            return NotImplemented
        return self.as_dict() == other.as_dict()

    def __hash__(self) -> int:
        return hash(frozenset(self.as_dict().items()))

    def normalize(self) -> TagSet:
        """Return a copy sorted by key with sorted values."""
        return TagSet(tuple(p.canonical() for p in sorted(self.pairs, key=lambda p: p.key)))

    def validate(self, *, max_values_per_key: int | None = None) -> None:
        """
        Validate the tag set against the service's constraints.

        Args:
            max_values_per_key: Optional cap on values per key.

        Raises:
            ValidationError: (or a subclass) describing the first violation.
        """
        if not self.pairs:
            raise ValidationError("At least one LF-Tag is required.")
        if len(self.pairs) > MAX_TAGS_PER_SET:
            raise TooManyTagsError(
                f"{len(self.pairs)} LF-Tags given; at most {MAX_TAGS_PER_SET} are allowed."
            )
        seen: set[str] = set()
        for pair in self.pairs:
            pair.validate(max_values=max_values_per_key)
            if pair.key in seen:
                raise DuplicateTagKeyError(f"Tag key '{pair.key}' is given more than once.")
            seen.add(pair.key)

    def to_request(self) -> list[dict[str, Any]]:
        return [p.to_request() for p in self.pairs]

    def __str__(self) -> str:
        return "; ".join(str(p) for p in self.pairs)
