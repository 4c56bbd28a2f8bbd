import threading

import pytest

from src.value_screener.finnhub.rate_limiter import NoOpRateLimiter
from src.value_screener.pipeline.channel import ClosableQueue, QueueClosedError
from src.value_screener.pipeline.stats import PipelineStats
from src.value_screener.pipeline.workers import FetchWorker, ResultWriter
from src.value_screener.storage import RecordStoreError
from tests._fixtures import FakeFundamentalsSource, build_record


def _worker(source, work_queue, result_queue, stats, cancel_event=None, rate_limiter=None):
    return FetchWorker(
        worker_id=0,
        work_queue=work_queue,
        result_queue=result_queue,
        rate_limiter=rate_limiter or NoOpRateLimiter(),
        source=source,
        cancel_event=cancel_event or threading.Event(),
        stats=stats,
    )


@pytest.mark.unit
def test_fetch_worker_forwards_successes_and_counts_failures():
    work, results = ClosableQueue(10), ClosableQueue(10)
    for s in ["AAA", "BAD", "CCC"]:
        work.put(s)
    work.close()
    stats = PipelineStats(symbols_found=3)
    source = FakeFundamentalsSource(failing={"BAD"})

    worker = _worker(source, work, results, stats)
    worker.run()
    results.close()

    assert [r.symbol for r in results] == ["AAA", "CCC"]
    assert worker.error is None
    assert worker.processed == 3
    assert stats.symbols_fetched == 2
    assert stats.symbols_failed == 1
    assert stats.errors[0].startswith("BAD:")


@pytest.mark.unit
def test_fetch_worker_stops_when_cancelled(mocker):
    work, results = ClosableQueue(10), ClosableQueue(10)
    for s in ["AAA", "BBB"]:
        work.put(s)
    work.close()
    limiter = mocker.Mock()
    limiter.acquire.return_value = False
    source = FakeFundamentalsSource()

    worker = _worker(source, work, results, PipelineStats(), rate_limiter=limiter)
    worker.run()

    assert source.calls == []
    assert worker.processed == 0
    assert limiter.acquire.call_count == 1


@pytest.mark.unit
def test_fetch_worker_keeps_lifecycle_errors():
    work, results = ClosableQueue(10), ClosableQueue(10)
    work.put("AAA")
    work.close()
    results.close()

    worker = _worker(FakeFundamentalsSource(), work, results, PipelineStats())
    worker.run()

    assert isinstance(worker.error, QueueClosedError)


@pytest.mark.unit
def test_incremental_writer_appends_each_record(fundamentals_store):
    fundamentals_store.reset()
    results = ClosableQueue(10)
    for s in ["AAA", "BBB", "CCC"]:
        results.put(build_record(s))
    results.close()
    stats = PipelineStats()

    writer = ResultWriter(results, fundamentals_store, stats, mode="incremental", progress_every=2)
    writer.run()

    assert writer.done.is_set()
    assert [item["Symbol"] for item in fundamentals_store.read()] == ["AAA", "BBB", "CCC"]
    assert stats.records_written == 3


@pytest.mark.unit
def test_incremental_writer_counts_write_failures_and_continues(fundamentals_store, mocker):
    results = ClosableQueue(10)
    for s in ["AAA", "BBB"]:
        results.put(build_record(s))
    results.close()
    stats = PipelineStats()
    mocker.patch.object(
        fundamentals_store,
        "append",
        side_effect=[RecordStoreError("Expected a JSON array", fundamentals_store.path), 1],
    )

    writer = ResultWriter(results, fundamentals_store, stats)
    writer.run()

    assert writer.error is None
    assert stats.write_failures == 1
    assert stats.records_written == 1


@pytest.mark.unit
def test_buffered_writer_writes_once(fundamentals_store, mocker):
    fundamentals_store.write([build_record("OLD")])
    results = ClosableQueue(10)
    for s in ["AAA", "BBB"]:
        results.put(build_record(s))
    results.close()
    stats = PipelineStats()
    write_spy = mocker.spy(fundamentals_store, "write")

    ResultWriter(results, fundamentals_store, stats, mode="buffered").run()

    assert write_spy.call_count == 1
    assert [item["Symbol"] for item in fundamentals_store.read()] == ["OLD", "AAA", "BBB"]
    assert stats.records_written == 2


@pytest.mark.unit
def test_writer_drains_queue_after_unexpected_error(fundamentals_store, mocker):
    results = ClosableQueue(10)
    for s in ["AAA", "BBB", "CCC"]:
        results.put(build_record(s))
    results.close()
    stats = PipelineStats()
    mocker.patch.object(fundamentals_store, "append", side_effect=RuntimeError("boom"))

    writer = ResultWriter(results, fundamentals_store, stats)
    writer.run()

    assert isinstance(writer.error, RuntimeError)
    assert writer.done.is_set()
    assert len(results) == 0
    assert stats.write_failures == 2  # the record in flight is not re-counted


@pytest.mark.unit
def test_writer_rejects_unknown_mode(fundamentals_store):
    with pytest.raises(ValueError):
        ResultWriter(ClosableQueue(1), fundamentals_store, PipelineStats(), mode="streaming")


@pytest.mark.unit
def test_non_finite_record_is_counted_as_write_failure(fundamentals_store):
    fundamentals_store.reset()
    results = ClosableQueue(10)
    results.put(build_record("AAA"))
    results.put(build_record("NAN", beta=float("nan")))
    results.put(build_record("CCC"))
    results.close()
    stats = PipelineStats()

    writer = ResultWriter(results, fundamentals_store, stats)
    writer.run()

    assert writer.error is None
    assert stats.records_written == 2
    assert stats.write_failures == 1
    assert [item["Symbol"] for item in fundamentals_store.read()] == ["AAA", "CCC"]
    assert "NaN" not in fundamentals_store.path.read_text(encoding="utf-8")
