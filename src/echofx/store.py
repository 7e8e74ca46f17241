"""Stores — uniform keyed access to the model behind a wrapper.

A store knows how to check, read, write and delete one key of a model.
ItemStore covers mappings and lists (``model[key]``); AttributeStore covers
ordinary objects (``model.key``).

Reads and writes take a ``receiver``: the wrapper the access came through.
Methods defined on the model's class are re-bound to it and properties run
with it as ``self``, so whatever they read or write is intercepted too.
"""

from __future__ import annotations

import datetime
import decimal
import fractions
import inspect
import pathlib
import types
import uuid
from collections.abc import MutableMapping, MutableSequence
from typing import Any, Hashable

_MISSING = object()

# Never wrapped: immutable values and value objects.
_atomic_types: set[type] = {
    str, bytes, bytearray, int, float, complex, bool, tuple, frozenset, range,
    datetime.date, datetime.time, datetime.timedelta, datetime.tzinfo,
    decimal.Decimal, fractions.Fraction, uuid.UUID, pathlib.PurePath,
}


def register_atomic(*types_: type) -> None:
    """Declare types whose instances are returned as-is, never wrapped.

    Call once at startup, before wrapping models that hold such values:
        echofx.register_atomic(Money, Vector3)
    """
    _atomic_types.update(types_)


def is_proxyable(value: object) -> bool:
    """Can value be wrapped? Mutable containers and attribute-bearing objects only."""
    if value is None or isinstance(value, tuple(_atomic_types)):
        return False
    if callable(value) or isinstance(value, types.ModuleType):
        return False
    if isinstance(value, (MutableMapping, MutableSequence)):
        return True
    return hasattr(value, "__dict__") or bool(getattr(type(value), "__slots__", ()))


def store_for(model: object) -> ItemStore | AttributeStore:
    if isinstance(model, (MutableMapping, MutableSequence)):
        return ItemStore(model)
    return AttributeStore(model)


class ItemStore:
    """Keyed access to a mutable mapping or sequence."""

    __slots__ = ("model",)

    def __init__(self, model: MutableMapping | MutableSequence) -> None:
        self.model = model

    def normalize(self, key: Hashable) -> Hashable:
        """Negative list indices count from the end, as the list itself does."""
        if isinstance(self.model, MutableSequence) and isinstance(key, int) and key < 0:
            return key + len(self.model)
        return key

    def has(self, key: Hashable) -> bool:
        if isinstance(self.model, MutableSequence):
            return isinstance(key, int) and 0 <= key < len(self.model)
        return key in self.model

    def read(self, key: Hashable, receiver: object = None) -> Any:
        return self.model[key]

    def write(self, key: Hashable, value: Any, receiver: object = None) -> None:
        self.model[key] = value

    def delete(self, key: Hashable) -> None:
        del self.model[key]


class AttributeStore:
    """Attribute access to an ordinary object."""

    __slots__ = ("model",)

    def __init__(self, model: object) -> None:
        self.model = model

    def normalize(self, key: str) -> str:
        return key

    def has(self, key: str) -> bool:
        # getattr_static: class attributes count, getters don't run.
        return inspect.getattr_static(self.model, key, _MISSING) is not _MISSING

    def read(self, key: str, receiver: object = None) -> Any:
        prop = inspect.getattr_static(type(self.model), key, None)
        if receiver is not None and isinstance(prop, property) and prop.fget is not None:
            return prop.fget(receiver)
        value = getattr(self.model, key)
        if (
            receiver is not None
            and isinstance(value, types.MethodType)
            and value.__self__ is self.model
        ):
            return types.MethodType(value.__func__, receiver)
        return value

    def write(self, key: str, value: Any, receiver: object = None) -> None:
        prop = inspect.getattr_static(type(self.model), key, None)
        if receiver is not None and isinstance(prop, property) and prop.fset is not None:
            prop.fset(receiver, value)
        else:
            setattr(self.model, key, value)

    def delete(self, key: str) -> None:
        delattr(self.model, key)
