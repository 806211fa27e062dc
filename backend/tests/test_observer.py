import pytest

from conftest import wait_for
from txwatch.models.transaction import TxState
from txwatch.watcher.observer import TxObserver
from txwatch.watcher.registry import TxWatchRegistry

TX = "12" * 32
OTHER = "34" * 32
KIND = "PROJECT_CONTRIBUTOR_TASK_COMMIT"


def recording_observer(registry):
    completions, updates = [], []
    observer = TxObserver(registry, on_complete=completions.append, on_update=updates.append)
    return observer, completions, updates


@pytest.mark.asyncio
async def test_completion_fires_once(registry, store):
    store.script(TX, timeline=["pending", "confirmed", "updated"])
    registry.watch(TX, KIND)
    observer, completions, updates = recording_observer(registry)

    observer.attach(TX)
    await registry.wait_until_terminal(TX, timeout=2)

    assert len(completions) == 1
    assert completions[0].state == TxState.UPDATED
    assert len(updates) >= 2
    assert observer.is_success
    assert observer.is_terminal
    assert not observer.is_failed


@pytest.mark.asyncio
async def test_attach_counts_subscribers(registry, store):
    store.script(TX, timeline=["pending"], stream_status=500)
    registry.watch(TX, KIND)
    first, _, _ = recording_observer(registry)
    second, _, _ = recording_observer(registry)

    first.attach(TX)
    second.attach(TX)
    assert registry.get_watched_tx(TX).subscriber_count == 2

    first.detach()
    first.detach()
    assert registry.get_watched_tx(TX).subscriber_count == 1

    with second:
        pass
    assert registry.get_watched_tx(TX).subscriber_count == 0
    assert not second.attached


@pytest.mark.asyncio
async def test_attach_to_unwatched_hash_starts_watching(registry, store):
    store.script(TX, timeline=["pending", "updated"])
    observer, completions, _ = recording_observer(registry)

    observation = observer.attach(TX, KIND)

    assert observation.status is None
    assert not observation.is_terminal
    assert registry.is_watching(TX)
    assert registry.get_watched_tx(TX).subscriber_count == 1
    assert registry.get_watched_tx(TX).kind == KIND

    await wait_for(lambda: completions)
    assert observer.is_success


@pytest.mark.asyncio
async def test_observers_share_one_connection(registry, store):
    store.script(TX, timeline=["pending", "updated"])
    first, first_done, _ = recording_observer(registry)
    second, second_done, _ = recording_observer(registry)

    first.attach(TX, KIND)
    connection = registry.connection_for(TX)
    second.attach(TX, KIND)

    assert registry.connection_for(TX) is connection
    await registry.wait_until_terminal(TX, timeout=2)
    assert len(first_done) == 1
    assert len(second_done) == 1


@pytest.mark.asyncio
async def test_attach_after_terminal_seeds_and_completes(registry, store):
    store.script(TX, timeline=["updated"])
    registry.watch(TX, KIND)
    await registry.wait_until_terminal(TX, timeout=2)
    observer, completions, _ = recording_observer(registry)

    observation = observer.attach(TX)

    assert observation.is_success
    assert observation.is_terminal
    assert len(completions) == 1


@pytest.mark.asyncio
async def test_latch_survives_reattach_to_same_hash(registry, store):
    store.script(TX, timeline=["updated"])
    registry.watch(TX, KIND)
    await registry.wait_until_terminal(TX, timeout=2)
    observer, completions, _ = recording_observer(registry)

    observer.attach(TX)
    observer.attach(TX)
    observer.detach()
    observer.attach(TX)

    assert len(completions) == 1
    assert registry.get_watched_tx(TX).subscriber_count == 1


@pytest.mark.asyncio
async def test_attaching_a_different_hash_resets_latch(registry, store):
    store.script(TX, timeline=["updated"])
    store.script(OTHER, timeline=[{"state": "failed", "last_error": "collateral missing"}])
    registry.watch(TX, KIND)
    registry.watch(OTHER, KIND)
    await registry.wait_until_terminal(TX, timeout=2)
    await registry.wait_until_terminal(OTHER, timeout=2)
    observer, completions, _ = recording_observer(registry)

    observer.attach(TX)
    observer.attach(OTHER)

    assert [s.state for s in completions] == [TxState.UPDATED, TxState.FAILED]
    assert observer.is_failed
    assert not observer.is_success
    assert registry.get_watched_tx(TX).subscriber_count == 0
    assert registry.get_watched_tx(OTHER).subscriber_count == 1


@pytest.mark.asyncio
async def test_stalled_counts_as_success_adjacent(registry, store):
    stalled = {"state": "confirmed", "last_error": "database write timed out"}
    store.script(TX, timeline=["pending", stalled], stream_status=500)
    observer, completions, _ = recording_observer(registry)

    observer.attach(TX, KIND)
    await wait_for(lambda: completions)

    observation = observer.observation
    assert observation.is_stalled
    assert observation.is_terminal
    assert observation.is_success
    assert not observation.is_failed
    assert len(completions) == 1


@pytest.mark.asyncio
async def test_detached_observer_receives_nothing(registry, store):
    store.script(TX, timeline=["pending", "updated"])
    registry.watch(TX, KIND)
    observer, completions, updates = recording_observer(registry)

    observer.attach(TX)
    observer.detach()
    await registry.wait_until_terminal(TX, timeout=2)

    assert completions == []
    assert updates == []


@pytest.mark.asyncio
async def test_errors_are_forwarded(gateway, store, notifier):
    registry = TxWatchRegistry(gateway, notifier=notifier, poll_interval=0.01, max_polls=1)
    errors = []
    observer = TxObserver(registry, on_error=errors.append)

    observer.attach(TX, KIND)
    await wait_for(lambda: errors)
    await registry.shutdown()

    assert observer.error is errors[0]


@pytest.mark.asyncio
async def test_failing_update_handler_does_not_block_completion(registry, store):
    store.script(TX, timeline=["pending", "updated"])
    completions = []

    def broken_update(observation):
        raise RuntimeError("render failed")

    observer = TxObserver(registry, on_complete=completions.append, on_update=broken_update)
    observer.attach(TX, KIND)
    await registry.wait_until_terminal(TX, timeout=2)

    assert [status.state for status in completions] == [TxState.UPDATED]
    assert observer.is_success
