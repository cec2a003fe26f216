from __future__ import annotations

import asyncio

import pytest

from skypointer.models import SensorChannel, SensorReading
from skypointer.sensors import PushSource, ReplaySource, SensorHub, load_sensor_log

ACCEL = SensorChannel.ACCELEROMETER
GYRO = SensorChannel.GYROSCOPE
MAG = SensorChannel.MAGNETOMETER

LOG = """timestamp,channel,x,y,z
0.040,accel,0.0,9.8,0.2
0.000,accel,0.0,9.8,0.1
0.000,gyro,0.0,0.0,0.0
0.020,gyro,0.01,0.0,0.0
0.020,accel,0.0,9.8,0.15
0.000,mag,20.0,0.0,-40.0
"""


@pytest.fixture
def log_path(tmp_path):
    path = tmp_path / "imu.csv"
    path.write_text(LOG, encoding="utf-8")
    return path


async def _collect(hub: SensorHub) -> list[SensorReading]:
    return [r async for r in hub.readings()]


def test_load_sensor_log_sorts_by_timestamp(log_path) -> None:
    df = load_sensor_log(log_path)
    assert len(df) == 6
    assert list(df["timestamp"]) == sorted(df["timestamp"])


def test_load_sensor_log_rejects_missing_column(tmp_path) -> None:
    path = tmp_path / "bad.csv"
    path.write_text("timestamp,channel,x,y\n0,accel,1,2\n", encoding="utf-8")
    with pytest.raises(ValueError, match="missing columns"):
        load_sensor_log(path)


def test_load_sensor_log_rejects_unknown_channel(tmp_path) -> None:
    path = tmp_path / "bad.csv"
    path.write_text("timestamp,channel,x,y,z\n0,baro,1,2,3\n", encoding="utf-8")
    with pytest.raises(ValueError, match="unknown channels"):
        load_sensor_log(path)


def test_replay_source_keeps_channel_order(log_path) -> None:
    source = ReplaySource(ACCEL, load_sensor_log(log_path))
    assert len(source) == 3

    async def run():
        return [r async for r in source.stream(0.0)]

    readings = asyncio.run(run())
    assert [r.timestamp for r in readings] == [0.0, 0.02, 0.04]
    assert [r.z for r in readings] == [0.1, 0.15, 0.2]
    assert all(r.channel is ACCEL for r in readings)


def test_hub_fans_in_every_channel(log_path) -> None:
    log = load_sensor_log(log_path)

    async def run():
        hub = SensorHub()
        for channel in SensorChannel:
            hub.subscribe(ReplaySource(channel, log), 0.0)
        assert hub.channels == frozenset(SensorChannel)
        readings = await _collect(hub)
        await hub.close()
        return readings

    readings = asyncio.run(run())
    assert len(readings) == 6
    per_channel = {c: [r.timestamp for r in readings if r.channel is c] for c in SensorChannel}
    assert per_channel[ACCEL] == [0.0, 0.02, 0.04]
    assert per_channel[GYRO] == [0.0, 0.02]
    assert per_channel[MAG] == [0.0]


def test_hub_rejects_second_source_for_channel(log_path) -> None:
    log = load_sensor_log(log_path)

    async def run():
        hub = SensorHub()
        hub.subscribe(ReplaySource(ACCEL, log), 0.0)
        try:
            with pytest.raises(ValueError):
                hub.subscribe(ReplaySource(ACCEL, log), 0.0)
        finally:
            await hub.close()

    asyncio.run(run())


def test_push_source_delivers_until_closed() -> None:
    async def run():
        source = PushSource(GYRO)
        hub = SensorHub()
        hub.subscribe(source, 0.02)
        for i in range(3):
            source.push(0.1 * i, 0.0, 0.0, timestamp=float(i))
        await source.close()
        source.push(9.0, 9.0, 9.0, timestamp=99.0)
        readings = await _collect(hub)
        await hub.close()
        return readings

    readings = asyncio.run(run())
    assert [r.timestamp for r in readings] == [0.0, 1.0, 2.0]
    assert readings[1].vector == (0.1, 0.0, 0.0)


def test_unsubscribe_is_idempotent() -> None:
    async def run():
        source = PushSource(MAG)
        hub = SensorHub()
        hub.subscribe(source, 0.04)
        await hub.unsubscribe(MAG)
        await hub.unsubscribe(MAG)
        await hub.unsubscribe(ACCEL)
        readings = await asyncio.wait_for(_collect(hub), timeout=1.0)
        return source, hub, readings

    source, hub, readings = asyncio.run(run())
    assert source.closed
    assert hub.channels == frozenset()
    assert readings == []


def test_push_source_close_twice() -> None:
    async def run():
        source = PushSource(ACCEL)
        await source.close()
        await source.close()
        return [r async for r in source.stream(0.02)]

    assert asyncio.run(run()) == []
