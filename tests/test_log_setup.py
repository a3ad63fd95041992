import pytest
import structlog

from log_setup import configure_logging


@pytest.fixture(autouse=True)
def reset_structlog():
    yield
    structlog.reset_defaults()


@pytest.mark.parametrize("json_logs", [False, True])
def test_timestamps_use_local_time(json_logs):
    configure_logging("INFO", json_logs)
    stampers = [p for p in structlog.get_config()["processors"]
                if isinstance(p, structlog.processors.TimeStamper)]
    assert len(stampers) == 1
    assert stampers[0].utc is False


def test_unknown_level_rejected():
    with pytest.raises(ValueError):
        configure_logging("LOUD")
