"""Reactive proxies — models that report their own mutations.

wrap(model, on_change) returns a wrapper that reads and writes straight
through to the model. Every mutation made through the wrapper is reported to
on_change(target, key, detail); nested objects come back wrapped too, so deep
mutations are reported as well.

Zero-argument functions read through the wrapper are tracked: the properties
they read are recorded, and when one of those properties changes the function
is pulsed with on_change(target, fn_key), no detail.

    state = wrap({"a": 1, "b": 2}, on_change)
    state["sum"] = lambda: state["a"] + state["b"]
    state["sum"]()
    state["a"] = 3
    # on_change(model, "a", {"old_value": 1, "new_value": 3})
    # on_change(model, "sum")

Each wrapper owns its proxy cache and dependency tracker; both go away with it.
"""

from __future__ import annotations

import enum
import functools
import inspect
import logging
from collections.abc import MutableSequence
from typing import Any, Callable, Hashable, TypedDict, TypeVar

from echofx._tracking import DependencyTracker
from echofx.store import AttributeStore, is_proxyable, store_for

T = TypeVar("T")

logger = logging.getLogger("echofx.proxy")


class Marker(enum.Enum):
    """Reserved keys. Checked before ordinary lookup, never stored in a model."""

    IS_PROXY = "is_proxy"
    FUNC_DEPS = "func_deps"


IS_PROXY = Marker.IS_PROXY
FUNC_DEPS = Marker.FUNC_DEPS


class ChangeDetail(TypedDict, total=False):
    """``{new_value}`` on creation, ``{old_value, new_value}`` on change, ``{old_value}`` on delete."""

    old_value: Any
    new_value: Any


Handler = Callable[..., None]


class ProxyError(Exception):
    """Base class for echofx errors."""


class AlreadyProxiedError(ProxyError, TypeError):
    """wrap() was called on an object that is already a wrapper."""


class NotProxyableError(ProxyError, TypeError):
    """wrap() was called on a value that has no keys or attributes to observe."""


class Interceptor:
    """get/set/delete/has over one model, with notification and tracking."""

    __slots__ = ("model", "handler", "store", "tracker", "proxies", "proxy")

    def __init__(self, model: object, handler: Handler) -> None:
        self.model = model
        self.handler = handler
        self.store = store_for(model)
        self.tracker = DependencyTracker()
        self.proxies: dict[Hashable, ReactiveProxy] = {}
        self.proxy: ReactiveProxy | None = None

    def get(self, key: Hashable) -> Any:
        if key is FUNC_DEPS:
            return self.tracker.dependents
        if key is IS_PROXY:
            return True
        key = self.store.normalize(key)
        value = self.store.read(key, self.proxy)
        self.tracker.record_read(key)
        if _takes_no_arguments(value):
            return self._tracked(key, value)
        if is_proxy(value):
            return value
        if is_proxyable(value):
            return self._child(key, value)
        return value

    def set(self, key: Hashable, value: Any) -> None:
        if isinstance(key, Marker):
            raise ProxyError(f"{key} is reserved and cannot be assigned")
        key = self.store.normalize(key)
        existed = self.store.has(key)
        # Raw read: a getter run for the old value must not be attributed to the active call.
        old_value = self.store.read(key) if existed else None

        child = None
        if is_proxy(value):
            child, value = value, unwrap(value)
            if interceptor_of(child).handler is not self.handler:
                child = None

        self.store.write(key, value, self.proxy)
        if is_proxyable(value):
            cached = self.proxies.get(key)
            if child is None and cached is not None and unwrap(cached) is value:
                child = cached
            self.proxies[key] = child if child is not None else _new_proxy(value, self.handler)

        if not existed:
            self.handler(self.model, key, {"new_value": value})
        elif _changed(old_value, value):
            self.handler(self.model, key, {"old_value": old_value, "new_value": value})
            for fn_key in self.tracker.invalidated_by(key):
                logger.debug("Invalidated %r: %r changed", fn_key, key)
                self.handler(self.model, fn_key)

    def delete(self, key: Hashable) -> None:
        if isinstance(key, Marker):
            return
        key = self.store.normalize(key)
        if not self.store.has(key):
            return
        old_value = self.store.read(key)
        self.store.delete(key)
        self.proxies.pop(key, None)
        self.handler(self.model, key, {"old_value": old_value})

    def has(self, key: Hashable) -> bool:
        if key is IS_PROXY:
            return True
        if isinstance(key, Marker):
            return False
        return self.store.has(self.store.normalize(key))

    def _child(self, key: Hashable, value: object) -> ReactiveProxy:
        """Cached wrapper for a nested object. Re-wrapped if the object was replaced."""
        child = self.proxies.get(key)
        # A raw replacement of the value is re-wrapped, not served from the stale entry.
        if child is None or unwrap(child) is not value:
            child = self.proxies[key] = _new_proxy(value, self.handler)
        return child

    def _tracked(self, key: Hashable, fn: Callable[..., T]) -> Callable[..., T]:
        tracker = self.tracker

        @functools.wraps(fn)
        def call(*args, **kwargs):
            with tracker.calling(key):
                return fn(*args, **kwargs)

        return call

    def __repr__(self) -> str:
        return f"Interceptor({self.model!r})"


class ReactiveProxy:
    """Base wrapper. All state lives on the Interceptor."""

    __slots__ = ("_interceptor",)

    def __init__(self, interceptor: Interceptor) -> None:
        object.__setattr__(self, "_interceptor", interceptor)

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self._interceptor.model!r})"


class ItemProxy(ReactiveProxy):
    """Wrapper for mappings and lists: ``proxy[key]``."""

    __slots__ = ()

    def __getitem__(self, key: Hashable) -> Any:
        return self._interceptor.get(key)

    def __setitem__(self, key: Hashable, value: Any) -> None:
        self._interceptor.set(key, value)

    def __delitem__(self, key: Hashable) -> None:
        self._interceptor.delete(key)

    def __contains__(self, item: Any) -> bool:
        model = self._interceptor.model
        if item is IS_PROXY or not isinstance(model, MutableSequence):
            return self._interceptor.has(item)
        # Lists answer membership of values, as the list itself does.
        return (unwrap(item) if is_proxy(item) else item) in model

    def __len__(self) -> int:
        return len(self._interceptor.model)

    def __iter__(self):
        model = self._interceptor.model
        if isinstance(model, MutableSequence):
            return (self._interceptor.get(i) for i in range(len(model)))
        return iter(model)


class ObjectProxy(ReactiveProxy):
    """Wrapper for ordinary objects: ``proxy.name``."""

    __slots__ = ()

    def __getattr__(self, name: str) -> Any:
        if name == "_interceptor":
            raise AttributeError(name)
        return self._interceptor.get(name)

    def __setattr__(self, name: str, value: Any) -> None:
        self._interceptor.set(name, value)

    def __delattr__(self, name: str) -> None:
        self._interceptor.delete(name)


def wrap(model: T, on_change: Handler) -> T:
    """Wrap model so that mutations through the result call on_change.

    on_change(target, key, detail) receives the raw model object, the key,
    and a ChangeDetail; invalidation pulses omit detail.

    Raises AlreadyProxiedError if model is already a wrapper.
    """
    if is_proxy(model):
        raise AlreadyProxiedError("Object is already proxied.")
    if not is_proxyable(model):
        raise NotProxyableError(f"Cannot wrap {type(model).__name__!r} value")
    return _new_proxy(model, on_change)  # type: ignore[return-value]


def _new_proxy(model: object, handler: Handler) -> ReactiveProxy:
    interceptor = Interceptor(model, handler)
    cls = ObjectProxy if isinstance(interceptor.store, AttributeStore) else ItemProxy
    interceptor.proxy = proxy = cls(interceptor)
    logger.debug("Wrapped %s", type(model).__name__)
    return proxy


def is_proxy(obj: object) -> bool:
    return isinstance(obj, ReactiveProxy) and obj._interceptor.has(IS_PROXY)


def interceptor_of(proxy: ReactiveProxy) -> Interceptor:
    """The explicit get/set/delete/has interface behind a wrapper."""
    if not isinstance(proxy, ReactiveProxy):
        raise TypeError(f"Not a reactive proxy: {proxy!r}")
    return proxy._interceptor


def unwrap(proxy: ReactiveProxy) -> object:
    """The raw model behind a wrapper."""
    return interceptor_of(proxy).model


def dependencies(proxy: ReactiveProxy) -> dict[Hashable, dict[Hashable, None]]:
    """Live dependency sets: property key -> ordered keys of functions that read it."""
    return interceptor_of(proxy).get(FUNC_DEPS)


def _takes_no_arguments(value: object) -> bool:
    """Callable with no required parameters (classes excluded)."""
    if not callable(value) or isinstance(value, type):
        return False
    try:
        signature = inspect.signature(value)
    except (TypeError, ValueError):
        return False
    return all(
        param.default is not param.empty or param.kind in (param.VAR_POSITIONAL, param.VAR_KEYWORD)
        for param in signature.parameters.values()
    )


def _changed(old: object, new: object) -> bool:
    """Strict inequality: identity for objects, type and == for plain values."""
    if old is new:
        return False
    if is_proxyable(old) or is_proxyable(new):
        return True
    if type(old) is not type(new):
        return True
    try:
        return bool(old != new)
    except ValueError:
        # Ambiguous truth value (e.g. arrays): treat as changed.
        return True
