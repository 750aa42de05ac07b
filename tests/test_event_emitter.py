
import asyncio

import pytest
import basedrum.event_emitter


def test_on_and_emit_sync () -> None:

	"""Registered sync callbacks are called on emit_sync."""

	emitter = basedrum.event_emitter.EventEmitter()
	received: list[int] = []

	emitter.on("tick", lambda v: received.append(v))
	emitter.emit_sync("tick", 42)

	assert received == [42]


def test_off_removes_callback () -> None:

	"""off() prevents a previously registered callback from being called."""

	emitter = basedrum.event_emitter.EventEmitter()
	received: list[int] = []

	def cb (v: int) -> None:
		received.append(v)

	emitter.on("tick", cb)
	emitter.off("tick", cb)
	emitter.emit_sync("tick", 1)

	assert received == []


def test_off_only_removes_target_callback () -> None:

	"""off() leaves other callbacks for the same event intact."""

	emitter = basedrum.event_emitter.EventEmitter()
	a: list[int] = []
	b: list[int] = []

	def cb_a (v: int) -> None:
		a.append(v)

	def cb_b (v: int) -> None:
		b.append(v)

	emitter.on("tick", cb_a)
	emitter.on("tick", cb_b)
	emitter.off("tick", cb_a)
	emitter.emit_sync("tick", 7)

	assert a == []
	assert b == [7]


def test_off_raises_for_unregistered_callback () -> None:

	"""off() raises ValueError when the callback was never registered."""

	emitter = basedrum.event_emitter.EventEmitter()

	with pytest.raises(ValueError, match="tick"):
		emitter.off("tick", lambda: None)


def test_off_raises_after_already_removed () -> None:

	"""off() raises ValueError when called twice for the same callback."""

	emitter = basedrum.event_emitter.EventEmitter()
	received: list[int] = []

	def cb (v: int) -> None:
		received.append(v)

	emitter.on("tick", cb)
	emitter.off("tick", cb)

	with pytest.raises(ValueError):
		emitter.off("tick", cb)


def test_listener_count () -> None:

	"""listener_count() reflects registrations per event."""

	emitter = basedrum.event_emitter.EventEmitter()

	emitter.on("step", lambda s: None)
	emitter.on("step", lambda s: None)

	assert emitter.listener_count("step") == 2
	assert emitter.listener_count("bar") == 0


def test_failing_listener_does_not_stop_others () -> None:

	"""A listener that raises is logged and the next one still runs."""

	emitter = basedrum.event_emitter.EventEmitter()
	received: list[int] = []

	def broken (v: int) -> None:
		raise RuntimeError("boom")

	emitter.on("step", broken)
	emitter.on("step", lambda v: received.append(v))
	emitter.emit_sync("step", 3)

	assert received == [3]


def test_emit_sync_rejects_async_listener () -> None:

	"""Async listeners cannot be called from the synchronous path."""

	emitter = basedrum.event_emitter.EventEmitter()

	async def listener (v: int) -> None:
		return None

	emitter.on("step", listener)

	with pytest.raises(ValueError, match="step"):
		emitter.emit_sync("step", 1)


@pytest.mark.asyncio
async def test_emit_async_runs_both_kinds () -> None:

	"""emit_async calls sync listeners and awaits async ones."""

	emitter = basedrum.event_emitter.EventEmitter()
	received: list[str] = []

	async def async_listener () -> None:
		received.append("async")

	emitter.on("start", lambda: received.append("sync"))
	emitter.on("start", async_listener)

	await emitter.emit_async("start")

	assert sorted(received) == ["async", "sync"]


@pytest.mark.asyncio
async def test_emit_schedules_async_listeners () -> None:

	"""emit calls sync listeners now and runs async ones as tasks, never raising."""

	emitter = basedrum.event_emitter.EventEmitter()
	received: list[str] = []

	async def async_listener (v: int) -> None:
		received.append(f"async {v}")

	async def failing_listener (v: int) -> None:
		raise RuntimeError("boom")

	emitter.on("step", async_listener)
	emitter.on("step", failing_listener)
	emitter.on("step", lambda v: received.append(f"sync {v}"))

	emitter.emit("step", 2)

	assert received == ["sync 2"]

	await asyncio.sleep(0)
	await asyncio.sleep(0)

	assert received == ["sync 2", "async 2"]


def test_emit_without_loop_skips_async_listeners () -> None:

	"""With no running loop an async listener is skipped and sync ones still run."""

	emitter = basedrum.event_emitter.EventEmitter()
	received: list[int] = []

	async def listener (v: int) -> None:
		received.append(-v)

	emitter.on("step", listener)
	emitter.on("step", received.append)

	emitter.emit("step", 4)

	assert received == [4]
