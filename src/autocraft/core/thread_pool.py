"""
Shared thread pools.

Blocking capability implementations (input injection, screen grabs, OCR
inference) are offloaded here so the attempt loop's event loop stays free.

- I/O pool: input injection and screen grabs
- compute pool: image preprocessing and OCR inference
"""
from __future__ import annotations

import asyncio
import os
from concurrent.futures import ThreadPoolExecutor
from typing import Optional

from .config import settings
from .logger import logger

_io_pool: Optional[ThreadPoolExecutor] = None
_compute_pool: Optional[ThreadPoolExecutor] = None


def _auto_compute_pool_size() -> int:
    """max(2, cpu_count // 2), capped at 8."""
    cpu = os.cpu_count() or 4
    return min(max(2, cpu // 2), 8)


def get_io_pool() -> ThreadPoolExecutor:
    """I/O pool. A single worker keeps input events strictly ordered."""
    global _io_pool
    if _io_pool is None:
        size = settings.io_thread_pool_size
        if size <= 0:
            size = 1
        _io_pool = ThreadPoolExecutor(
            max_workers=size,
            thread_name_prefix="autocraft-io",
        )
        logger.debug("I/O thread pool created: max_workers={}", size)
    return _io_pool


def get_compute_pool() -> ThreadPoolExecutor:
    """Compute pool for preprocessing and OCR."""
    global _compute_pool
    if _compute_pool is None:
        size = settings.compute_thread_pool_size
        if size <= 0:
            size = _auto_compute_pool_size()
        _compute_pool = ThreadPoolExecutor(
            max_workers=size,
            thread_name_prefix="autocraft-compute",
        )
        logger.debug("compute thread pool created: max_workers={}", size)
    return _compute_pool


async def run_in_io(func, *args):
    """Run a blocking function on the I/O pool and await it."""
    loop = asyncio.get_running_loop()
    return await loop.run_in_executor(get_io_pool(), func, *args)


async def run_in_compute(func, *args):
    """Run a blocking function on the compute pool and await it."""
    loop = asyncio.get_running_loop()
    return await loop.run_in_executor(get_compute_pool(), func, *args)


def shutdown_pools() -> None:
    """Shut down both pools."""
    global _io_pool, _compute_pool
    if _io_pool:
        _io_pool.shutdown(wait=False)
        _io_pool = None
    if _compute_pool:
        _compute_pool.shutdown(wait=False)
        _compute_pool = None
    logger.debug("thread pools shut down")
