import asyncio
import threading
import time

import pytest

from autocraft.core import thread_pool as thread_pool_module
from autocraft.core.thread_pool import (
    get_compute_pool,
    get_io_pool,
    run_in_compute,
    run_in_io,
    shutdown_pools,
)


@pytest.fixture(autouse=True)
def _reset_pools():
    shutdown_pools()
    yield
    shutdown_pools()


@pytest.mark.asyncio
async def test_io_jobs_run_serially_on_one_thread():
    events = []

    def _job(idx: int, delay: float):
        events.append(("start", idx))
        time.sleep(delay)
        events.append(("end", idx))
        return threading.get_ident()

    t1, t2, t3 = await asyncio.gather(
        run_in_io(_job, 1, 0.05),
        run_in_io(_job, 2, 0.01),
        run_in_io(_job, 3, 0.0),
    )

    assert t1 == t2 == t3
    assert events == [
        ("start", 1),
        ("end", 1),
        ("start", 2),
        ("end", 2),
        ("start", 3),
        ("end", 3),
    ]


@pytest.mark.asyncio
async def test_compute_runs_off_the_event_loop_thread():
    loop_thread = threading.get_ident()
    worker_thread = await run_in_compute(threading.get_ident)
    assert worker_thread != loop_thread


def test_pools_are_reused_until_shutdown():
    io_pool = get_io_pool()
    compute_pool = get_compute_pool()

    assert get_io_pool() is io_pool
    assert get_compute_pool() is compute_pool

    shutdown_pools()
    assert get_io_pool() is not io_pool


def test_compute_pool_size_from_settings(monkeypatch):
    monkeypatch.setattr(thread_pool_module.settings, "compute_thread_pool_size", 3)
    assert get_compute_pool()._max_workers == 3


def test_auto_compute_pool_size_is_bounded(monkeypatch):
    monkeypatch.setattr(thread_pool_module.os, "cpu_count", lambda: 64)
    assert thread_pool_module._auto_compute_pool_size() == 8

    monkeypatch.setattr(thread_pool_module.os, "cpu_count", lambda: 2)
    assert thread_pool_module._auto_compute_pool_size() == 2
