"""Sensor channels as asyncio producers feeding one consumer queue.

Each subscribed channel runs its own task that pulls readings from a
``SensorSource`` and puts them on the hub queue. Arrival order across
channels is whatever the event loop produces; the consumer must not assume
any interleaving.
"""

import asyncio
import contextlib
import logging
from abc import ABC, abstractmethod
from collections.abc import AsyncIterator
from dataclasses import dataclass
from pathlib import Path

import pandas as pd

from skypointer.models import SensorChannel, SensorReading

logger = logging.getLogger(__name__)

LOG_COLUMNS = ("timestamp", "channel", "x", "y", "z")


class SensorSource(ABC):
    """Producer of readings for a single channel."""

    channel: SensorChannel

    @abstractmethod
    def stream(self, interval_s: float) -> AsyncIterator[SensorReading]:
        """Yield readings, nominally one per ``interval_s``."""

    async def close(self) -> None:
        """Release the underlying listener. Must be safe to call twice."""


class PushSource(SensorSource):
    """Bridge for callback-style platform APIs: the callback calls ``push``."""

    def __init__(self, channel: SensorChannel) -> None:
        self.channel = channel
        self._queue: asyncio.Queue[SensorReading | None] = asyncio.Queue()
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    def push(self, x: float, y: float, z: float, timestamp: float | None = None) -> None:
        if self._closed:
            return
        if timestamp is None:
            timestamp = asyncio.get_running_loop().time()
        self._queue.put_nowait(SensorReading(self.channel, float(x), float(y), float(z), timestamp))

    async def stream(self, interval_s: float) -> AsyncIterator[SensorReading]:
        # Delivery rate is set by the platform; interval_s is advisory here.
        while True:
            reading = await self._queue.get()
            if reading is None:
                return
            yield reading

    async def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        self._queue.put_nowait(None)


def load_sensor_log(path: Path) -> pd.DataFrame:
    """Read a recorded IMU log.

    File format: CSV with header ``timestamp,channel,x,y,z`` where channel is
    ``accel``, ``gyro`` or ``mag``. Rows are sorted by timestamp.

    Raises:
        ValueError: If a column is missing or a channel name is unknown.
    """
    df = pd.read_csv(path)
    missing = [c for c in LOG_COLUMNS if c not in df.columns]
    if missing:
        raise ValueError(f"{path}: missing columns {missing}")
    df = df.dropna(subset=list(LOG_COLUMNS))
    known = {c.value for c in SensorChannel}
    unknown = set(df["channel"].astype(str)) - known
    if unknown:
        raise ValueError(f"{path}: unknown channels {sorted(unknown)}")
    return df.sort_values("timestamp", kind="stable").reset_index(drop=True)


class ReplaySource(SensorSource):
    """Replays one channel of a recorded log. An interval of 0 replays as fast as possible."""

    def __init__(self, channel: SensorChannel, log: pd.DataFrame) -> None:
        self.channel = channel
        self._rows = log[log["channel"].astype(str) == channel.value]

    def __len__(self) -> int:
        return len(self._rows)

    async def stream(self, interval_s: float) -> AsyncIterator[SensorReading]:
        for row in self._rows.itertuples(index=False):
            yield SensorReading(
                channel=self.channel,
                x=float(row.x),
                y=float(row.y),
                z=float(row.z),
                timestamp=float(row.timestamp),
            )
            await asyncio.sleep(interval_s)


@dataclass(frozen=True)
class _ChannelClosed:
    channel: SensorChannel


class SensorHub:
    """Fan-in of all subscribed channels into a single queue."""

    def __init__(self) -> None:
        self.queue: asyncio.Queue[SensorReading | _ChannelClosed] = asyncio.Queue()
        self._tasks: dict[SensorChannel, asyncio.Task] = {}
        self._sources: dict[SensorChannel, SensorSource] = {}
        self._open: set[SensorChannel] = set()

    @property
    def channels(self) -> frozenset[SensorChannel]:
        return frozenset(self._tasks)

    def subscribe(self, source: SensorSource, interval_s: float) -> None:
        """Start pumping ``source``. One source per channel."""
        if source.channel in self._tasks:
            raise ValueError(f"{source.channel.value} already subscribed")
        self._sources[source.channel] = source
        self._open.add(source.channel)
        self._tasks[source.channel] = asyncio.create_task(
            self._pump(source, interval_s), name=f"sensor-{source.channel.value}"
        )
        logger.info("Subscribed %s at %.0f ms", source.channel.value, interval_s * 1000)

    async def _pump(self, source: SensorSource, interval_s: float) -> None:
        try:
            async for reading in source.stream(interval_s):
                self.queue.put_nowait(reading)
        finally:
            await source.close()
            self.queue.put_nowait(_ChannelClosed(source.channel))

    async def unsubscribe(self, channel: SensorChannel) -> None:
        """Stop a channel and release its source. No-op if not subscribed."""
        task = self._tasks.pop(channel, None)
        source = self._sources.pop(channel, None)
        if task is None:
            return
        task.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await task
        # A task cancelled before its first step never reaches the pump's finally.
        if source is not None:
            await source.close()
        self._open.discard(channel)
        logger.info("Unsubscribed %s", channel.value)

    async def close(self) -> None:
        for channel in list(self._tasks):
            await self.unsubscribe(channel)

    async def readings(self) -> AsyncIterator[SensorReading]:
        """Yield readings in arrival order until every channel has closed."""
        while self._open:
            item = await self.queue.get()
            if isinstance(item, _ChannelClosed):
                self._open.discard(item.channel)
                continue
            yield item
