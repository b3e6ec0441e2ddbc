import asyncio
import os
import subprocess
import sys
from pathlib import Path

import pytest

from infrastructure.errors import LockAcquisitionError
from infrastructure.locks import ExclusiveRunLock
from tests.helpers import DummyLogger

REPO_ROOT = Path(__file__).resolve().parents[2]

HOLDER_SCRIPT = """
import asyncio
import sys

from infrastructure.locks import ExclusiveRunLock


async def main():
    async with ExclusiveRunLock("shared", timeout=5, directory=sys.argv[1]):
        print("held", flush=True)
        sys.stdin.read()


asyncio.run(main())
"""


@pytest.mark.asyncio
async def test_second_holder_times_out(tmp_path):
    holder_ready = asyncio.Event()
    release = asyncio.Event()

    async def hold():
        async with ExclusiveRunLock("ticks", timeout=1, directory=tmp_path):
            holder_ready.set()
            await release.wait()

    task = asyncio.create_task(hold())
    await holder_ready.wait()

    with pytest.raises(LockAcquisitionError) as exc_info:
        async with ExclusiveRunLock("ticks", timeout=0.05, directory=tmp_path, logger=DummyLogger()):
            pass

    assert exc_info.value.name == "ticks"
    release.set()
    await task


@pytest.mark.asyncio
async def test_waiter_gets_lock_once_holder_releases(tmp_path):
    order = []

    async def hold():
        async with ExclusiveRunLock("ticks", timeout=1, directory=tmp_path, poll_interval=0.01):
            order.append("first")
            await asyncio.sleep(0.05)
            order.append("first done")

    task = asyncio.create_task(hold())
    await asyncio.sleep(0)
    async with ExclusiveRunLock("ticks", timeout=1, directory=tmp_path, poll_interval=0.01):
        order.append("second")
    await task

    assert order == ["first", "first done", "second"]


@pytest.mark.asyncio
async def test_lock_held_by_another_process_blocks(tmp_path):
    env = dict(os.environ, FUNCTION_TRACKING="0", PYTHONPATH=str(REPO_ROOT))
    holder = subprocess.Popen(
        [sys.executable, "-c", HOLDER_SCRIPT, str(tmp_path)],
        cwd=REPO_ROOT,
        env=env,
        stdin=subprocess.PIPE,
        stdout=subprocess.PIPE,
        text=True,
    )
    try:
        assert holder.stdout.readline().strip() == "held"

        with pytest.raises(LockAcquisitionError):
            async with ExclusiveRunLock("shared", timeout=0.3, directory=tmp_path, logger=DummyLogger()):
                pass
    finally:
        holder.stdin.close()
        holder.wait(timeout=10)
        holder.stdout.close()

    async with ExclusiveRunLock("shared", timeout=1, directory=tmp_path):
        pass


@pytest.mark.asyncio
async def test_lock_is_released_after_exception(tmp_path):
    with pytest.raises(RuntimeError):
        async with ExclusiveRunLock("released", timeout=0.1, directory=tmp_path):
            raise RuntimeError("boom")

    async with ExclusiveRunLock("released", timeout=0.1, directory=tmp_path):
        pass


@pytest.mark.asyncio
async def test_different_names_do_not_block_each_other(tmp_path):
    async with ExclusiveRunLock("first", timeout=0.05, directory=tmp_path):
        async with ExclusiveRunLock("second", timeout=0.05, directory=tmp_path):
            pass

    assert sorted(path.name for path in tmp_path.iterdir()) == ["first.lock", "second.lock"]


@pytest.mark.asyncio
async def test_run_returns_result(tmp_path):
    async def work():
        return 42

    assert await ExclusiveRunLock("run", timeout=0.1, directory=tmp_path).run(work) == 42
