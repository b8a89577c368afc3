"""
Deterministic, type-tagged hashing of call arguments.

The result cache needs a key that identifies a call by *what* was passed,
not by object identity, and that never confuses values which merely print
the same. Naive ``str()`` joining maps ``1`` and ``"1"`` to the same key;
``canonical_repr`` tags every value with its type first.

Manifesto:
    Argument keys must be:
    - **Deterministic:** Same arguments → same key, across calls and runs
    - **Order-sensitive:** ``f(1, 2)`` ≠ ``f(2, 1)``
    - **Type-sensitive:** ``1``, ``1.0``, ``True`` and ``"1"`` all differ
    - **Keyword-order-insensitive:** ``f(a=1, b=2)`` == ``f(b=2, a=1)``

Architecture:
    ::

        canonical_key(*args, **kwargs)
            │
            ▼
        canonical_repr((args, kwargs))     ─ recursive, type-tagged text
            │    int:1   str:"1"   bool:true   float:1.0
            │    tuple[...]   list[...]   dict{k=v,...}   set{...}
            │    mod.Point:dict{...}     (dataclass fields or vars())
            ▼
        sha256 hexdigest                    ─ fixed-length cache key

Examples:
    >>> canonical_repr(1) == canonical_repr("1")
    False
    >>> canonical_key(1, 2) == canonical_key(1, 2)
    True
    >>> canonical_key(a=1, b=2) == canonical_key(b=2, a=1)
    True

Tags:
    hashing, memoization, cache-key, cadence

Doc-Types:
    - API Reference
"""

import dataclasses
import hashlib
import json
from typing import Any


def canonical_repr(value: Any) -> str:
    """
    Render a value as canonical, type-tagged text.

    Containers are rendered recursively. Dict entries and set members are
    sorted by their own canonical text, so insertion order does not leak
    into the result. Dataclasses render their fields and plain objects
    render ``vars()``, both under the fully-qualified type name. Other
    objects fall back to type name plus ``repr``, so they must define a
    stable ``__repr__`` of their own.

    Args:
        value: Any Python value

    Returns:
        Canonical text for ``value``

    Raises:
        TypeError: For objects with neither a ``__dict__`` nor their own
            ``__repr__`` (e.g. plain ``__slots__`` classes)
    """
    # bool before int: True is an int
    if value is None:
        return "none"
    if isinstance(value, bool):
        return "bool:true" if value else "bool:false"
    if isinstance(value, int):
        return f"int:{value}"
    if isinstance(value, float):
        return f"float:{value!r}"
    if isinstance(value, str):
        return f"str:{json.dumps(value)}"
    if isinstance(value, (bytes, bytearray)):
        return f"{type(value).__name__}:{bytes(value).hex()}"
    if isinstance(value, tuple):
        return "tuple[" + ",".join(canonical_repr(v) for v in value) + "]"
    if isinstance(value, list):
        return "list[" + ",".join(canonical_repr(v) for v in value) + "]"
    if isinstance(value, dict):
        items = sorted(f"{canonical_repr(k)}={canonical_repr(v)}" for k, v in value.items())
        return "dict{" + ",".join(items) + "}"
    if isinstance(value, (set, frozenset)):
        members = sorted(canonical_repr(v) for v in value)
        return f"{type(value).__name__}{{" + ",".join(members) + "}"
    if dataclasses.is_dataclass(value) and not isinstance(value, type):
        fields = {f.name: getattr(value, f.name) for f in dataclasses.fields(value)}
        return f"{_type_name(value)}:{canonical_repr(fields)}"
    if type(value).__repr__ is object.__repr__:
        # Default repr embeds the memory address, which is reused after GC
        try:
            state = vars(value)
        except TypeError:
            raise TypeError(
                f"Cannot build a cache key for {_type_name(value)!r}: "
                "it has no __dict__ and no __repr__ of its own"
            ) from None
        return f"{_type_name(value)}:{canonical_repr(state)}"
    return f"{_type_name(value)}:{value!r}"


def _type_name(value: Any) -> str:
    cls = type(value)
    return f"{cls.__module__}.{cls.__qualname__}"


def canonical_key(*args: Any, **kwargs: Any) -> str:
    """
    Compute the default result-cache key for a call.

    Args:
        *args: Positional call arguments (order matters)
        **kwargs: Keyword call arguments (order does not matter)

    Returns:
        64-char hex SHA-256 of the canonical call text
    """
    content = canonical_repr((args, kwargs))
    return hashlib.sha256(content.encode()).hexdigest()


__all__ = ["canonical_repr", "canonical_key"]
