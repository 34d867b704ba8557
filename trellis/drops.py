"""Drops: hash-like facades over site objects for templates.

A drop wraps one backing object (a page, a collection, the site) and lets
template code read and write it like a dictionary. Each key resolves through
three layers, first match wins:

1. mutation overrides (only on drop classes declared ``mutable=True``),
2. accessors declared on the drop class with ``@accessor``,
3. the backing object's fallback data (e.g. a page's front matter).

Writes go to an accessor's writer when one is declared, to the mutation
overrides when a mutable drop shadows a read-only accessor, and otherwise to
the fallback data, which is a live reference into the backing object.

Key classes:
- Accessor: Descriptor declaring a named key on a drop class.
- Drop: Base facade implementing lookup, writes, enumeration and merging.
- ImmutableKeyError / KeyNotFoundError: Misuse of a drop.
"""

from __future__ import annotations

import copy
import json
from collections.abc import Callable, Iterator, Mapping, MutableMapping
from functools import cached_property
from types import MappingProxyType
from typing import Any, ClassVar

from .utils import deep_merge, json_default, mergeable

__all__ = [
    "Accessor",
    "Drop",
    "DropError",
    "ImmutableKeyError",
    "KeyNotFoundError",
    "NON_CONTENT_KEYS",
    "accessor",
    "writer",
]

# Infrastructure hooks every drop has; never exposed as content keys.
NON_CONTENT_KEYS = frozenset({"fallback_data", "collapse_document"})

_MISSING = object()

Resolver = Callable[[Any, Any, Any], Any]


class DropError(Exception):
    """Base class for errors raised by drops."""


class ImmutableKeyError(DropError):
    """A write tried to shadow a read-only accessor on a non-mutable drop.

    Attributes:
        key: The key that was written.
    """

    def __init__(self, key: Any):
        self.key = key
        super().__init__(f"Key {key} cannot be set in the drop.")


class KeyNotFoundError(DropError, KeyError):
    """``Drop.fetch`` found no value, default or missing-key handler.

    Attributes:
        key: The key that was requested.
    """

    def __init__(self, key: Any):
        self.key = key
        super().__init__(f'key not found: "{key}"')

    def __str__(self) -> str:
        return str(self.args[0])


class Accessor:
    """A key declared on a drop class.

    Works like ``property``: the decorated function reads the value and
    ``@name.setter`` adds a writer. Attribute access on a drop instance goes
    through the drop's own lookup, so ``drop.title`` and ``drop["title"]``
    always agree, including when a mutation override is in place.

    Attributes:
        fget: Reader called as ``fget(drop)``, or None for a writer-only key.
        fset: Writer called as ``fset(drop, value)``, or None.
        name: Key name, taken from the attribute the accessor is bound to.
    """

    def __init__(
        self,
        fget: Callable[[Any], Any] | None = None,
        fset: Callable[[Any, Any], None] | None = None,
        name: str | None = None,
    ):
        self.fget = fget
        self.fset = fset
        source = fget or fset
        self.name = name or (source.__name__ if source is not None else "")
        self.__doc__ = getattr(fget, "__doc__", None)

    def __set_name__(self, owner: type, name: str) -> None:
        self.name = name

    def __get__(self, instance: Drop | None, owner: type | None = None) -> Any:
        if instance is None:
            return self
        return instance[self.name]

    def __set__(self, instance: Drop, value: Any) -> None:
        instance[self.name] = value

    @property
    def readable(self) -> bool:
        return self.fget is not None

    @property
    def writable(self) -> bool:
        return self.fset is not None

    def setter(self, fset: Callable[[Any, Any], None]) -> Accessor:
        return type(self)(self.fget, fset, self.name)

    def __repr__(self) -> str:  # pragma: no cover - for debugging
        mode = "rw" if self.readable and self.writable else ("w" if self.writable else "r")
        return f"Accessor({self.name!r}, {mode})"


def accessor(fget: Callable[[Any], Any]) -> Accessor:
    """Declare a readable key on a drop class."""
    return Accessor(fget)


def writer(fset: Callable[[Any, Any], None]) -> Accessor:
    """Declare a key that can be written through the drop but is read from fallback data."""
    return Accessor(None, fset)


class Drop(Mapping):
    """Dictionary-like view over a backing object.

    Subclasses declare their keys with ``@accessor`` and choose mutability
    with a class keyword, which is fixed once the class is defined::

        class PageDrop(Drop, mutable=False):
            @accessor
            def title(self):
                return self.backing_object.title

    Attributes:
        mutable: Whether writes may shadow read-only accessors.
        accessors: Read-only mapping of key name to Accessor for this class,
            including inherited ones.
    """

    mutable: ClassVar[bool] = False
    accessors: ClassVar[Mapping[str, Accessor]] = MappingProxyType({})

    def __init_subclass__(cls, mutable: bool | None = None, **kwargs: Any):
        super().__init_subclass__(**kwargs)
        if mutable is not None:
            cls.mutable = bool(mutable)
        table: dict[str, Accessor] = {}
        for klass in reversed(cls.__mro__):
            for name, value in vars(klass).items():
                if isinstance(value, Accessor):
                    table[name] = value
                elif name in table:
                    del table[name]
        reserved = NON_CONTENT_KEYS.intersection(table)
        if reserved:
            raise TypeError(
                f"{cls.__name__} cannot declare reserved key(s): {', '.join(sorted(reserved))}"
            )
        cls.accessors = MappingProxyType(table)

    def __init__(self, obj: Any):
        """Wrap ``obj``; nothing is computed until first use.

        Args:
            obj: The backing object. The drop keeps a reference, never a copy.
        """
        self._obj = obj
        self._mutations: dict[Any, Any] | None = None

    @property
    def backing_object(self) -> Any:
        return self._obj

    def load_fallback_data(self) -> MutableMapping[Any, Any]:
        """Return the backing object's secondary key/value store.

        Subclasses return a live mapping owned by the backing object, such
        as a page's front matter. The base class accepts a backing object
        that is itself a mutable mapping.
        """
        if isinstance(self._obj, MutableMapping):
            return self._obj
        raise NotImplementedError(
            f"{type(self).__name__} must implement load_fallback_data() "
            f"for {type(self._obj).__name__} objects"
        )

    @cached_property
    def fallback_data(self) -> MutableMapping[Any, Any]:
        return self.load_fallback_data()

    @cached_property
    def content_keys(self) -> list[str]:
        """Names of the readable accessors, in declaration order."""
        return [name for name, acc in self.accessors.items() if acc.readable]

    def _readable_accessor(self, key: Any) -> Accessor | None:
        acc = self.accessors.get(key) if isinstance(key, str) else None
        if acc is not None and acc.readable:
            return acc
        return None

    def _has_mutation(self, key: Any) -> bool:
        return self.mutable and self._mutations is not None and key in self._mutations

    def __getitem__(self, key: Any) -> Any:
        """Resolve ``key``: mutation, then accessor, then fallback data.

        Unknown keys return None; use ``key in drop`` to tell a missing key
        from one whose value is None.
        """
        if self._has_mutation(key):
            return self._mutations[key]
        acc = self._readable_accessor(key)
        if acc is not None:
            return acc.fget(self)
        return self.fallback_data.get(key)

    def __setitem__(self, key: Any, value: Any) -> None:
        """Set ``key``.

        Raises:
            ImmutableKeyError: If ``key`` names a read-only accessor and the
                drop class is not mutable.
        """
        acc = self.accessors.get(key) if isinstance(key, str) else None
        if acc is not None and acc.writable:
            acc.fset(self, value)
        elif acc is not None:
            if not self.mutable:
                raise ImmutableKeyError(key)
            if self._mutations is None:
                self._mutations = {}
            self._mutations[key] = value
        else:
            self.fallback_data[key] = value

    def __contains__(self, key: object) -> bool:
        if key is None:
            return False
        if self._has_mutation(key):
            return True
        return self._readable_accessor(key) is not None or key in self.fallback_data

    def keys(self) -> list[Any]:
        """Return every content key: accessors, then overrides, then fallback data."""
        keys = list(self.content_keys)
        seen = set(keys)
        for key in (*(self._mutations or ()), *self.fallback_data):
            if key not in seen:
                seen.add(key)
                keys.append(key)
        return keys

    def __iter__(self) -> Iterator[Any]:
        return iter(self.keys())

    def __len__(self) -> int:
        return len(self.keys())

    def get(self, key: Any, default: Any = None) -> Any:
        return self[key] if key in self else default

    def fetch(
        self,
        key: Any,
        default: Any = _MISSING,
        on_missing: Callable[[Any], Any] | None = None,
    ) -> Any:
        """Look up ``key`` like ``dict`` indexing, with explicit fallbacks.

        Args:
            key: Key to look up.
            default: Returned when the key is missing. Passing None is a real
                default; leaving it out means "no default".
            on_missing: Called with the key when it is missing; wins over
                ``default``.

        Raises:
            KeyNotFoundError: If the key is missing and neither fallback was
                given.
        """
        if key in self:
            return self[key]
        if on_missing is not None:
            return on_missing(key)
        if default is not _MISSING:
            return default
        raise KeyNotFoundError(key)

    def to_dict(self) -> dict[Any, Any]:
        """Resolve every key into a plain dict snapshot."""
        return {key: self[key] for key in self.keys()}

    def collapse_document(self) -> Any:
        """Representation used when this drop is nested inside serialized data."""
        return self.to_dict()

    def to_json(self) -> str:
        return json.dumps(self.to_dict(), default=json_default)

    def inspect(self) -> str:
        """Pretty-printed JSON of the drop's keys and values."""
        return json.dumps(self.to_dict(), indent=2, default=json_default)

    def __repr__(self) -> str:
        return self.inspect()

    def __copy__(self) -> Drop:
        clone = type(self).__new__(type(self))
        clone.__dict__.update(self.__dict__)
        if self._mutations is not None:
            clone._mutations = dict(self._mutations)
        return clone

    def merge(self, other: Mapping, resolver: Resolver | None = None) -> Drop:
        """Return a copy of this drop with ``other`` merged in.

        The copy shares the backing object, so keys that land in fallback
        data are visible through the original drop too; mutation overrides
        are copied.
        """
        return copy.copy(self).merge_in_place(other, resolver)

    def merge_in_place(self, other: Mapping, resolver: Resolver | None = None) -> Drop:
        """Merge ``other`` (a mapping or drop) into this drop.

        With ``resolver``, each key is set to ``resolver(key, current,
        incoming)``. Without it, nested mappings are deep-merged and other
        values overwrite, except that an incoming None never replaces a
        value.

        Returns:
            This drop.
        """
        for key in other.keys():
            incoming = other[key]
            if resolver is not None:
                self[key] = resolver(key, self[key], incoming)
                continue
            current = self[key]
            if mergeable(current) and mergeable(incoming):
                self[key] = deep_merge(current, incoming)
            elif incoming is not None:
                self[key] = incoming
        return self
