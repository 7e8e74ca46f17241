"""echofx: observable models with dependency-tracked derived functions."""

from importlib.metadata import version as _version

__version__ = _version("echofx")

from echofx.proxy import (
    FUNC_DEPS,
    IS_PROXY,
    AlreadyProxiedError,
    ChangeDetail,
    Interceptor,
    ItemProxy,
    Marker,
    NotProxyableError,
    ObjectProxy,
    ProxyError,
    ReactiveProxy,
    dependencies,
    interceptor_of,
    is_proxy,
    unwrap,
    wrap,
)
from echofx.store import is_proxyable, register_atomic

__all__ = [
    "wrap",
    "is_proxy",
    "unwrap",
    "interceptor_of",
    "dependencies",
    "is_proxyable",
    "register_atomic",
    "FUNC_DEPS",
    "IS_PROXY",
    "Marker",
    "ChangeDetail",
    "Interceptor",
    "ReactiveProxy",
    "ItemProxy",
    "ObjectProxy",
    "ProxyError",
    "AlreadyProxiedError",
    "NotProxyableError",
]
