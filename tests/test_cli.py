from __future__ import annotations

import pytest
from click.testing import CliRunner

from skypointer.cli import main

SEOUL = ["--lat", "37.5", "--lng", "127.0"]

IMU_LOG = """timestamp,channel,x,y,z
0.00,accel,0.0,9.81,1.0
0.00,gyro,0.0,0.0,0.0
0.00,mag,20.0,0.0,-40.0
0.02,accel,0.0,9.81,1.0
0.02,gyro,0.0,0.0,0.0
"""


@pytest.fixture
def runner() -> CliRunner:
    return CliRunner(env={"SKYPOINTER_LANG": "en", "SKYPOINTER_CATALOG": None})


def test_search_lists_sirius(runner) -> None:
    result = runner.invoke(main, ["search", "sirius", *SEOUL])
    assert result.exit_code == 0, result.output
    assert result.stdout.splitlines()[0].split()[0] == "Sirius"


def test_search_without_matches(runner) -> None:
    result = runner.invoke(main, ["search", "zzzz", *SEOUL])
    assert result.exit_code == 0
    assert "No matches" in result.stdout


def test_search_requires_location(runner) -> None:
    result = runner.invoke(main, ["search", "sirius"])
    assert result.exit_code == 2
    assert "--lat" in result.output


def test_point_prints_equatorial(runner) -> None:
    result = runner.invoke(main, ["point", "180", "45", *SEOUL])
    assert result.exit_code == 0, result.output
    assert result.stdout.startswith("RA ")
    assert "Dec " in result.stdout


def test_point_rejects_altitude_out_of_range(runner) -> None:
    result = runner.invoke(main, ["point", "180", "95", *SEOUL])
    assert result.exit_code == 2


def test_point_with_target(runner) -> None:
    result = runner.invoke(main, ["point", "100", "20", "--target", "sirius", *SEOUL])
    assert result.exit_code == 0, result.output
    assert "Selected: Sirius" in result.stdout
    assert "Distance" in result.stdout


def test_invalid_setting_is_reported(runner) -> None:
    result = runner.invoke(main, ["point", "0", "0", *SEOUL], env={"SKYPOINTER_FRAME": "galactic"})
    assert result.exit_code == 1
    assert "SKYPOINTER_FRAME" in result.output


def test_replay_prints_readouts(runner, tmp_path) -> None:
    log = tmp_path / "imu.csv"
    log.write_text(IMU_LOG, encoding="utf-8")
    result = runner.invoke(
        main,
        ["replay", str(log), "--true-heading", "100", "--magnetic-heading", "108", *SEOUL],
    )
    assert result.exit_code == 0, result.output
    lines = [line for line in result.stdout.splitlines() if line.startswith("az")]
    assert lines
    assert "RA" in lines[0]


def test_convert(runner, tmp_path) -> None:
    src = tmp_path / "hyg.csv"
    src.write_text("id,proper,ra,dec,mag\n1,Sirius,6.75,-16.7,-1.44\n", encoding="utf-8")
    dst = tmp_path / "stars.json"
    result = runner.invoke(main, ["convert", str(src), str(dst)])
    assert result.exit_code == 0, result.output
    assert "Converted 1 stars" in result.stdout
    assert dst.exists()
