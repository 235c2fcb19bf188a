"""Query keys: canonical serialization, prefix matching and typed builders."""

from __future__ import annotations

import json
from collections.abc import Callable, Sequence
from dataclasses import dataclass, field
from typing import Any

from swrcache.errors import InvalidQueryKeyError
from swrcache.types import KeyLike

_SEPARATOR = ","


def _dump(parts: Sequence[Any]) -> str:
    try:
        return json.dumps(
            list(parts),
            separators=(_SEPARATOR, ":"),
            sort_keys=True,
            ensure_ascii=False,
            allow_nan=False,
        )
    except (TypeError, ValueError) as e:
        raise InvalidQueryKeyError(f"Key is not JSON-serializable: {parts!r}") from e


@dataclass(frozen=True, slots=True)
class QueryKey:
    """A structured key whose canonical form is computed once.

    Equality and hashing go through the canonical string, so
    ``QueryKey(("clients", 1)) == QueryKey(["clients", 1])``.
    """

    parts: tuple[Any, ...] = field(compare=False)
    canonical: str = field(init=False, repr=False)

    def __post_init__(self) -> None:
        if isinstance(self.parts, (str, bytes)) or not isinstance(
            self.parts, Sequence
        ):
            raise InvalidQueryKeyError(
                f"QueryKey parts must be a sequence, got {type(self.parts).__name__}"
            )
        parts = tuple(self.parts)
        object.__setattr__(self, "parts", parts)
        object.__setattr__(self, "canonical", _dump(parts))

    @property
    def family(self) -> Any:
        return self.parts[0] if self.parts else None

    def child(self, *parts: Any) -> QueryKey:
        """Extend this key; the result always matches this key as a prefix."""
        return QueryKey((*self.parts, *parts))

    def is_prefix_of(self, other: KeyLike) -> bool:
        return key_matches_prefix(serialize_key(other), self)

    def __repr__(self) -> str:
        return f"QueryKey({'/'.join(str(p) for p in self.parts)})"


def serialize_key(key: KeyLike) -> str:
    """Canonical string for a key.

    Strings pass through unchanged; sequences become compact JSON with
    sorted object keys so logically equal keys serialize identically.
    """
    if isinstance(key, QueryKey):
        return key.canonical
    if isinstance(key, str):
        return key
    if isinstance(key, (list, tuple)):
        return _dump(key)
    raise InvalidQueryKeyError(
        f"Expected str, list, tuple or QueryKey, got {type(key).__name__}"
    )


def key_matches_prefix(canonical: str, prefix: KeyLike) -> bool:
    """Check if a stored canonical key falls under ``prefix``.

    Sequence prefixes match structurally: ``["dash","a"]`` covers
    ``["dash","a","b"]`` but not ``["dash","ab"]``. String prefixes match
    textually.
    """
    return prefix_matcher(prefix)(canonical)


def prefix_matcher(prefix: KeyLike) -> Callable[[str], bool]:
    """Build a predicate for repeated prefix checks against one prefix."""
    serialized = serialize_key(prefix)

    if isinstance(prefix, str):
        return lambda canonical: canonical.startswith(serialized)

    # Drop the closing bracket so children continue at an element boundary
    if serialized == "[]":
        return lambda canonical: canonical.startswith("[")
    open_prefix = serialized[:-1] + _SEPARATOR
    return lambda canonical: canonical == serialized or canonical.startswith(
        open_prefix
    )


class KeyFamily:
    """Builds every key of one query family under a shared root segment."""

    __slots__ = ("_build", "_name", "_root")

    def __init__(self, name: str, build: Callable[..., Sequence[Any]]) -> None:
        if not isinstance(name, str) or not name:
            raise InvalidQueryKeyError(
                f"Key family name must be a non-empty string: {name!r}"
            )
        self._name = name
        self._build = build
        self._root = QueryKey((name,))

    @property
    def name(self) -> str:
        return self._name

    @property
    def root(self) -> QueryKey:
        """Prefix covering every key of this family."""
        return self._root

    def __call__(self, *args: Any) -> QueryKey:
        tail = self._build(*args)
        if isinstance(tail, (str, bytes)) or not isinstance(tail, Sequence):
            raise InvalidQueryKeyError(
                f"Key family {self._name!r} must build a sequence, got {tail!r}"
            )
        return self._root.child(*tail)

    def __repr__(self) -> str:
        return f"KeyFamily({self._name})"


def define_keys(
    definitions: dict[str, Callable[..., Sequence[Any]]],
) -> dict[str, KeyFamily]:
    """
    Define the key families of an application in one place.

    Each builder returns the segments that follow the family name.

    Example:
        keys = define_keys({
            "calendar-dashboard": lambda mode, scope: (mode, scope),
            "clients": lambda: (),
        })

        keys["calendar-dashboard"]("unlocked", "all")
        # QueryKey(calendar-dashboard/unlocked/all)
        keys["calendar-dashboard"].root  # prefix for bulk invalidation
    """
    return {name: KeyFamily(name, build) for name, build in definitions.items()}
