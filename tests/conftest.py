import sys
import threading
from pathlib import Path

import pytest

# Make the repository root importable so `src.` and `tests._fixtures` resolve
# the same way they do under an editable install.
root = Path(__file__).resolve().parent.parent
if str(root) not in sys.path:
    sys.path.insert(0, str(root))

from src.value_screener.config import ScreenerConfig  # noqa: E402
from src.value_screener.storage import JsonArrayStore  # noqa: E402
from tests._fixtures.remote_api_responses import canned_api_factory  # noqa: E402


@pytest.fixture(autouse=True)
def block_network(mocker):
    """Autouse fixture: prevent any test from performing real network calls"""
    mocker.patch("requests.Session.get", return_value=canned_api_factory("empty", status=599))
    yield


@pytest.fixture
def settings(tmp_path):
    """Configuration pointing at a temporary data directory with fast limits."""
    return ScreenerConfig(
        API_KEY="TESTKEY12345",
        MIN_REQUEST_INTERVAL=0.0,
        DISABLE_RATE_LIMITING=False,
        FETCH_WORKERS=3,
        QUEUE_CAPACITY=5,
        RATIO_WORKERS=4,
        PROGRESS_EVERY=2,
        SAVE_STATS=False,
        DATA_DIR=str(tmp_path),
    )


@pytest.fixture
def fundamentals_store(tmp_path):
    return JsonArrayStore(tmp_path / "fundamentals_US.json")


@pytest.fixture
def cancel_event():
    return threading.Event()
