"""Helpers to call blocking clients from asyncio code."""

import asyncio
import logging
from typing import Any, Callable, Optional, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar('T')


async def call_blocking(
    func: Callable[..., T],
    *args: Any,
    timeout: Optional[float] = None,
    default: Optional[T] = None,
    label: str = "",
) -> Optional[T]:
    """
    Run a blocking call in a worker thread under a timeout.

    A timeout or an exception from ``func`` is logged as a warning and
    ``default`` is returned instead.

    Args:
        func: Blocking callable (typically a requests-backed fetch)
        *args: Positional arguments for ``func``
        timeout: Seconds before giving up, None for no limit
        default: Value returned on failure
        label: Name used in log messages
    """
    name = label or getattr(func, '__qualname__', repr(func))
    try:
        return await asyncio.wait_for(asyncio.to_thread(func, *args), timeout)
    except asyncio.TimeoutError:
        logger.warning("%s timed out after %ss", name, timeout)
    except Exception as e:
        logger.warning("%s failed: %s", name, e)
    return default
