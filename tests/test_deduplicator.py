import asyncio

import pytest

from orchestrator.deduplicator import RequestDeduplicator


class CountingProducer:
    def __init__(self, result=None, error: Exception | None = None, delay_s: float = 0.01):
        self.result = result
        self.error = error
        self.delay_s = delay_s
        self.calls = 0

    async def __call__(self):
        self.calls += 1
        await asyncio.sleep(self.delay_s)
        if self.error is not None:
            raise self.error
        return self.result


@pytest.mark.unit
def test_concurrent_callers_share_one_call():
    deduplicator = RequestDeduplicator()
    producer = CountingProducer(result=["a", "b"])

    async def run():
        return await asyncio.gather(*(deduplicator.dedupe("key", producer) for _ in range(5)))

    results = asyncio.run(run())

    assert producer.calls == 1
    assert results == [["a", "b"]] * 5


@pytest.mark.unit
def test_different_keys_do_not_share():
    deduplicator = RequestDeduplicator()
    producer = CountingProducer(result=1)

    async def run():
        await asyncio.gather(deduplicator.dedupe("a", producer), deduplicator.dedupe("b", producer))

    asyncio.run(run())

    assert producer.calls == 2


@pytest.mark.unit
def test_failure_is_shared_by_all_waiters():
    deduplicator = RequestDeduplicator()
    producer = CountingProducer(error=RuntimeError("upstream down"))

    async def run():
        return await asyncio.gather(
            deduplicator.dedupe("key", producer),
            deduplicator.dedupe("key", producer),
            return_exceptions=True,
        )

    first, second = asyncio.run(run())

    assert producer.calls == 1
    assert isinstance(first, RuntimeError)
    assert isinstance(second, RuntimeError)


@pytest.mark.unit
def test_completed_result_is_reused_within_ttl():
    deduplicator = RequestDeduplicator(ttl_seconds=300)
    producer = CountingProducer(result="done")

    async def run():
        first = await deduplicator.dedupe("key", producer)
        second = await deduplicator.dedupe("key", producer)
        return first, second

    assert asyncio.run(run()) == ("done", "done")
    assert producer.calls == 1


@pytest.mark.unit
def test_entry_is_evicted_after_ttl():
    deduplicator = RequestDeduplicator(ttl_seconds=0.01)
    producer = CountingProducer(result="done", delay_s=0)

    async def run():
        await deduplicator.dedupe("key", producer)
        await asyncio.sleep(0.05)
        assert len(deduplicator) == 0
        await deduplicator.dedupe("key", producer)

    asyncio.run(run())

    assert producer.calls == 2


@pytest.mark.unit
def test_registry_is_cleared_above_capacity():
    deduplicator = RequestDeduplicator(max_entries=2)
    producer = CountingProducer(result=1, delay_s=0)

    async def run():
        for key in ("a", "b"):
            await deduplicator.dedupe(key, producer)
        assert len(deduplicator) == 2
        await deduplicator.dedupe("c", producer)
        assert len(deduplicator) == 0

    asyncio.run(run())


@pytest.mark.unit
def test_cancelled_waiter_does_not_cancel_shared_call():
    deduplicator = RequestDeduplicator()
    producer = CountingProducer(result="shared", delay_s=0.05)

    async def run():
        impatient = asyncio.ensure_future(deduplicator.dedupe("key", producer))
        patient = asyncio.ensure_future(deduplicator.dedupe("key", producer))
        await asyncio.sleep(0.01)
        impatient.cancel()
        return await patient

    assert asyncio.run(run()) == "shared"
    assert producer.calls == 1


@pytest.mark.unit
def test_stale_entry_from_finished_loop_is_replaced():
    deduplicator = RequestDeduplicator()
    producer = CountingProducer(result="value", delay_s=0)

    asyncio.run(deduplicator.dedupe("key", producer))
    asyncio.run(deduplicator.dedupe("key", producer))

    assert producer.calls == 2
