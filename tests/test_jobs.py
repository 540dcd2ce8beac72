import asyncio
import logging

import pytest

from lspproxy.jobs import Jobs


@pytest.mark.asyncio
async def test_dispatched_job_runs_against_editor():
    jobs = Jobs()
    editor = {"count": 0}

    def bump(state):
        state["count"] += 1

    await jobs.dispatch(bump)
    callback = await jobs.next_callback()
    jobs.handle_callback(editor, callback)
    assert editor["count"] == 1


@pytest.mark.asyncio
async def test_jobs_come_out_in_order():
    jobs = Jobs()
    seen = []
    for index in range(3):
        await jobs.dispatch(lambda editor, index=index: seen.append(index))
    for _ in range(3):
        jobs.handle_callback(None, await jobs.next_callback())
    assert seen == [0, 1, 2]


def test_none_call_does_nothing():
    editor = {"count": 0}
    Jobs().handle_callback(editor, None)
    assert editor == {"count": 0}


def test_failed_call_is_logged(caplog):
    caplog.set_level(logging.ERROR, logger="lspproxy.jobs")
    editor = {"count": 0}
    Jobs().handle_callback(editor, RuntimeError("boom"))
    assert editor == {"count": 0}
    assert caplog.records[-1].getMessage() == "Async job failed: boom"


@pytest.mark.asyncio
async def test_dispatch_waits_when_full():
    jobs = Jobs()
    for _ in range(Jobs.CAPACITY):
        await jobs.dispatch(lambda editor: None)
    assert jobs.pending() == Jobs.CAPACITY
    with pytest.raises(asyncio.TimeoutError):
        await asyncio.wait_for(jobs.dispatch(lambda editor: None), timeout=0.05)
    await jobs.next_callback()
    await asyncio.wait_for(jobs.dispatch(lambda editor: None), timeout=1)
    assert jobs.pending() == Jobs.CAPACITY