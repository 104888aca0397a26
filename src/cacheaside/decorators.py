"""Cache-aside decorators for async functions.

``@cached`` routes every call of an async function through
``CoalescingCache.get_or_set``, so concurrent calls with the same
arguments share one execution and later calls are served from cache.
"""

import functools
import inspect
import re
from collections.abc import Callable
from typing import Any, TypeVar

from cacheaside.core.services.coalescing_cache import CoalescingCache
from cacheaside.utils.hashing import hash_value

F = TypeVar("F", bound=Callable[..., Any])

# Module-level default engine
_cache: CoalescingCache[Any] | None = None


def configure(cache: CoalescingCache[Any] | None) -> None:
    """Set the engine used by decorators that were not given one.

    Example:
        configure(CoalescingCache(InMemoryKeyValueClient()))
    """
    global _cache
    _cache = cache


def get_cache() -> CoalescingCache[Any] | None:
    """Get the configured default engine, or None."""
    return _cache


def cached(
    key: str | Callable[..., str] | None = None,
    cache: CoalescingCache[Any] | None = None,
) -> Callable[[F], F]:
    """Decorator for cache-aside execution of async functions.

    Args:
        key: Custom cache key or function to generate it.
            If string, supports {arg_name} interpolation.
            If callable, receives (*args, **kwargs) and returns key string.
            If None, the key is built from the function name and a hash
            of its bound arguments.
        cache: Engine to use. Falls back to the one set by configure();
            without either the function runs uncached.

    Example:
        @cached(key="users:id:{id}")
        async def get_user(id: str) -> dict:
            return await db.fetch_one("SELECT * FROM users WHERE id = ?", (id,))
    """

    def decorator(func: F) -> F:
        signature = inspect.signature(func)

        @functools.wraps(func)
        async def wrapper(*args: Any, **kwargs: Any) -> Any:
            engine = cache or _cache
            if engine is None:
                return await func(*args, **kwargs)

            cache_key = _build_cache_key(func, signature, args, kwargs, key)
            return await engine.get_or_set(cache_key, lambda: func(*args, **kwargs))

        return wrapper  # type: ignore

    return decorator


def invalidates(
    key: str | Callable[..., str],
    cache: CoalescingCache[Any] | None = None,
) -> Callable[[F], F]:
    """Decorator that deletes a cache entry after the function succeeds.

    Args:
        key: Key to delete, with {arg_name} interpolation, or a callable
            receiving (*args, **kwargs).
        cache: Engine to use. Falls back to the one set by configure().

    Example:
        @invalidates(key="users:id:{id}")
        async def rename_user(id: str, name: str) -> None:
            await db.execute("UPDATE users SET name = ? WHERE id = ?", (name, id))
    """

    def decorator(func: F) -> F:
        signature = inspect.signature(func)

        @functools.wraps(func)
        async def wrapper(*args: Any, **kwargs: Any) -> Any:
            result = await func(*args, **kwargs)

            engine = cache or _cache
            if engine is not None:
                cache_key = _build_cache_key(func, signature, args, kwargs, key)
                await engine.invalidate(cache_key)

            return result

        return wrapper  # type: ignore

    return decorator


def _build_cache_key(
    func: Callable[..., Any],
    signature: inspect.Signature,
    args: tuple[Any, ...],
    kwargs: dict[str, Any],
    custom_key: str | Callable[..., str] | None,
) -> str:
    """Build cache key for a function call."""
    if callable(custom_key):
        return custom_key(*args, **kwargs)

    bound = signature.bind(*args, **kwargs)
    bound.apply_defaults()
    arguments = dict(bound.arguments)

    if custom_key is not None:
        return _interpolate_string(custom_key, arguments)

    module = (func.__module__ or "default").split(".")[-1]
    return ":".join([module, func.__qualname__, hash_value(arguments)])


def _interpolate_string(template: str, arguments: dict[str, Any]) -> str:
    """Interpolate {arg_name} placeholders in string.

    Unknown placeholders are kept as-is.
    """
    pattern = r"\{(\w+)\}"

    def replacer(match: re.Match[str]) -> str:
        name = match.group(1)
        if name in arguments:
            return str(arguments[name])
        return match.group(0)

    return re.sub(pattern, replacer, template)
