"""Tests for the shared FetchTask handle."""

import asyncio

import pytest

from swrcache import FetchTask, TaskState


class TestFetchTask:
    """Tests for settlement, broadcast and cancellation."""

    async def test_success(self) -> None:
        async def fetch() -> list[str]:
            return ["a"]

        task = FetchTask.spawn("k", fetch)
        assert task.state is TaskState.PENDING
        await task.join()

        assert task.state is TaskState.SUCCEEDED
        assert task.done()
        assert task.result() == ["a"]
        assert task.exception() is None

    async def test_failure_is_captured_not_raised(self) -> None:
        async def fetch() -> None:
            raise ValueError("backend down")

        task = FetchTask.spawn("k", fetch)
        await task.join()

        assert task.state is TaskState.FAILED
        assert isinstance(task.exception(), ValueError)
        assert task.result() is None

    async def test_plain_callable_accepted(self) -> None:
        task = FetchTask.spawn("k", lambda: 42)
        await task
        assert task.result() == 42

    async def test_sync_raise_is_captured(self) -> None:
        def fetch() -> None:
            raise KeyError("missing")

        task = FetchTask.spawn("k", fetch)
        await task.join()
        assert isinstance(task.exception(), KeyError)

    async def test_listeners_run_before_joiners_resume(self) -> None:
        seen: list[str] = []

        async def fetch() -> int:
            await asyncio.sleep(0)
            return 1

        task = FetchTask.spawn("k", fetch)
        task.add_done_callback(lambda t: seen.append(f"listener:{t.result()}"))

        async def joiner(name: str) -> None:
            await task.join()
            seen.append(name)

        await asyncio.gather(joiner("a"), joiner("b"))
        assert seen[0] == "listener:1"
        assert sorted(seen[1:]) == ["a", "b"]

    async def test_callback_after_settlement_runs_immediately(self) -> None:
        task = FetchTask.spawn("k", lambda: "v")
        await task.join()

        seen: list[str] = []
        task.add_done_callback(lambda t: seen.append(t.key))
        assert seen == ["k"]

    async def test_raising_listener_does_not_stop_others(self) -> None:
        seen: list[int] = []

        def broken(_: FetchTask[int]) -> None:
            raise RuntimeError("boom")

        task = FetchTask.spawn("k", lambda: 1)
        task.add_done_callback(broken)
        task.add_done_callback(lambda t: seen.append(1))
        await task.join()
        assert seen == [1]

    async def test_cancel_settles_and_join_returns(self) -> None:
        gate = asyncio.Event()
        seen: list[TaskState] = []

        async def fetch() -> None:
            await gate.wait()

        task = FetchTask.spawn("k", fetch)
        task.add_done_callback(lambda t: seen.append(t.state))
        await asyncio.sleep(0)

        assert task.cancel()
        await task.join()
        assert task.cancelled()
        assert seen == [TaskState.CANCELLED]
        assert not task.cancel()

    async def test_cancel_before_start(self) -> None:
        seen: list[TaskState] = []
        task = FetchTask.spawn("k", lambda: 1)
        task.add_done_callback(lambda t: seen.append(t.state))
        task.cancel()
        await task.join()
        assert task.cancelled()
        assert seen == [TaskState.CANCELLED]

    async def test_cancelling_a_joiner_keeps_the_fetch_running(self) -> None:
        gate = asyncio.Event()

        async def fetch() -> str:
            await gate.wait()
            return "done"

        task = FetchTask.spawn("k", fetch)
        joiner = asyncio.create_task(task.join())
        await asyncio.sleep(0)
        joiner.cancel()
        with pytest.raises(asyncio.CancelledError):
            await joiner

        assert not task.done()
        gate.set()
        await task.join()
        assert task.result() == "done"

    async def test_repr(self) -> None:
        task = FetchTask.spawn("clients", lambda: None)
        await task.join()
        assert repr(task) == "FetchTask('clients', succeeded)"
