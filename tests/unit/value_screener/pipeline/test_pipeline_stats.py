import json
import threading

import pytest

from src.value_screener.pipeline.stats import PipelineStats


@pytest.mark.unit
def test_counters_and_success_rate():
    stats = PipelineStats(symbols_found=4)
    stats.add_fetch_result("A", True)
    stats.add_fetch_result("B", True)
    stats.add_fetch_result("C", True)
    stats.add_fetch_result("D", False, "not found")

    assert stats.symbols_processed == 4
    assert stats.symbols_fetched == 3
    assert stats.symbols_failed == 1
    assert stats.success_rate == pytest.approx(75.0)
    assert stats.errors == ["D: not found"]


@pytest.mark.unit
def test_success_rate_zero_when_nothing_processed():
    assert PipelineStats().success_rate == 0.0


@pytest.mark.unit
def test_write_results_return_running_total():
    stats = PipelineStats()
    assert stats.add_write_result("A", True) == 1
    assert stats.add_write_result("B", False, "disk full") == 1
    assert stats.add_write_result("C", True) == 2
    assert stats.write_failures == 1
    assert stats.errors == ["B (write): disk full"]


@pytest.mark.unit
def test_concurrent_updates_are_not_lost():
    stats = PipelineStats()

    def _bump():
        for _ in range(500):
            stats.add_fetch_result("X", True)

    threads = [threading.Thread(target=_bump) for _ in range(8)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert stats.symbols_fetched == 4000


@pytest.mark.unit
def test_save_writes_json_snapshot(tmp_path):
    stats = PipelineStats(symbols_found=1)
    stats.add_fetch_result("A", True)
    stats.add_write_result("A", True)
    stats.finish()

    path = stats.save(tmp_path / "stats")

    assert path is not None and path.name.startswith("pipeline_stats_")
    data = json.loads(path.read_text(encoding="utf-8"))
    assert data["records_written"] == 1
    assert data["symbols_found"] == 1
    assert data["end_time"] is not None


@pytest.mark.unit
def test_save_failure_is_logged_not_raised(tmp_path):
    blocker = tmp_path / "not_a_dir"
    blocker.write_text("x")

    assert PipelineStats().save(blocker / "stats") is None


@pytest.mark.unit
def test_to_dict_caps_error_list():
    stats = PipelineStats()
    for i in range(15):
        stats.add_fetch_result(f"S{i}", False, "boom")

    data = stats.to_dict()
    assert data["error_count"] == 15
    assert len(data["errors"]) == 10


@pytest.mark.unit
def test_snapshot_records_metric_field_map_version(tmp_path):
    from src.value_screener.finnhub.data_models import METRIC_FIELD_MAP_VERSION

    stats = PipelineStats()
    assert stats.to_dict()["metric_field_map_version"] == METRIC_FIELD_MAP_VERSION

    path = stats.save(tmp_path)
    assert json.loads(path.read_text(encoding="utf-8"))["metric_field_map_version"] == METRIC_FIELD_MAP_VERSION
