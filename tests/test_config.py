import pytest

from station_stats.config import DEFAULT_BLOCK_SIZE, Settings
from station_stats.errors import ConfigError


def test_defaults():
    settings = Settings()
    assert settings.block_size == DEFAULT_BLOCK_SIZE
    assert settings.workers >= 1
    assert settings.executor == "process"
    assert settings.delimiter == ";"
    assert settings.in_flight_limit == 2 * settings.workers


@pytest.mark.parametrize(
    "kwargs",
    [
        {"block_size": 0},
        {"workers": 0},
        {"executor": "gpu"},
        {"delimiter": ";;"},
        {"delimiter": "\n"},
        {"max_in_flight": 0},
        {"shards": -1},
    ],
)
def test_invalid_settings(kwargs):
    with pytest.raises(ConfigError):
        Settings(**kwargs)


def test_from_env_reads_prefixed_variables():
    settings = Settings.from_env(
        {
            "STATION_STATS_BLOCK_SIZE": "4096",
            "STATION_STATS_WORKERS": "3",
            "STATION_STATS_EXECUTOR": "thread",
            "STATION_STATS_DELIMITER": "|",
            "STATION_STATS_MAX_IN_FLIGHT": "",
            "UNRELATED": "x",
        }
    )
    assert settings.block_size == 4096
    assert settings.workers == 3
    assert settings.executor == "thread"
    assert settings.delimiter == "|"
    assert settings.max_in_flight is None


def test_from_env_rejects_non_integers():
    with pytest.raises(ConfigError):
        Settings.from_env({"STATION_STATS_WORKERS": "many"})


def test_overrides_skip_none():
    base = Settings(workers=2, executor="thread")
    assert base.with_overrides(workers=None, executor=None) is base
    changed = base.with_overrides(workers=5, block_size=None)
    assert changed.workers == 5
    assert changed.executor == "thread"
    assert changed.in_flight_limit == 10
