from __future__ import annotations

from pathlib import Path

import pytest

from skypointer.config import DEFAULT_CATALOG_PATH, Settings, load_settings


def test_defaults() -> None:
    settings = load_settings({})
    assert settings == Settings()
    assert settings.catalog_path == DEFAULT_CATALOG_PATH
    assert settings.sample_period_s == pytest.approx(0.02)
    assert settings.mag_interval_ms == 40


def test_reads_environment() -> None:
    settings = load_settings(
        {
            "SKYPOINTER_BETA": "0.45",
            "SKYPOINTER_FRAME": "J2000",
            "SKYPOINTER_LANG": "EN",
            "SKYPOINTER_CATALOG": "/tmp/stars.json",
            "SKYPOINTER_SEARCH_LIMIT": " 5 ",
            "SKYPOINTER_ALIGNED_DEG": "",
        }
    )
    assert settings.beta == 0.45
    assert settings.frame == "j2000"
    assert settings.lang == "en"
    assert settings.catalog_path == Path("/tmp/stars.json")
    assert settings.search_limit == 5
    assert settings.aligned_deg == 0.5


@pytest.mark.parametrize(
    ("env", "message"),
    [
        ({"SKYPOINTER_BETA": "fast"}, "SKYPOINTER_BETA"),
        ({"SKYPOINTER_FRAME": "galactic"}, "SKYPOINTER_FRAME"),
        ({"SKYPOINTER_SMOOTHING_WINDOW": "0"}, "SKYPOINTER_SMOOTHING_WINDOW"),
        ({"SKYPOINTER_MAG_INTERVAL_MS": "-1"}, "INTERVAL_MS"),
    ],
)
def test_invalid_values(env, message) -> None:
    with pytest.raises(ValueError, match=message):
        load_settings(env)


def test_os_environ_is_default(monkeypatch) -> None:
    monkeypatch.setenv("SKYPOINTER_HYSTERESIS_DEG", "1.5")
    assert load_settings().hysteresis_deg == 1.5
