"""
Output sinks: where simulated samples go.

The simulator only knows the ``OutputSink`` contract: it asks the sink which
channels are active and publishes each sample once per channel. Registering
channels with whatever consumes them is the sink's business, done in
``open()`` and undone in ``close()``.
"""

import json
import logging
import os
import threading
from abc import ABC, abstractmethod
from datetime import datetime
from sys import stdout
from typing import Dict, List, Optional, Sequence, Tuple

from . import nmea
from .constants import DEFAULT_CHANNELS, OutputFormat
from .errors import PublishError
from .models import LocationSample

logger = logging.getLogger(__name__)


__all__ = [
    'OutputSink',
    'StreamSink',
    'FileSink',
    'MemorySink',
    'format_sample',
]


class OutputSink(ABC):
    """Contract between the simulator and the consumers of its samples."""

    def open(self):
        """Register channels before the first sample. Optional."""

    def close(self):
        """Deregister channels after the last sample. Optional."""

    @abstractmethod
    def channels(self) -> List[str]:
        """Currently active channel names."""

    @abstractmethod
    def publish(self, sample: LocationSample, channel: str) -> None:
        """
        Deliver one sample to one channel.

        Raises:
            PublishError: the channel could not take the sample
        """


def format_sample(sample: LocationSample, channel: str,
                  fmt: OutputFormat = OutputFormat.JSON) -> List[str]:
    """Render a sample as output lines (without EOL)."""
    if fmt == OutputFormat.NMEA:
        return nmea.sentences(sample)
    payload = {"channel": channel}
    payload.update(sample.to_dict())
    return [json.dumps(payload)]


class StreamSink(OutputSink):
    """
    Writes samples to a file-like output (stdout by default), one set of
    lines per channel per sample.
    """

    def __init__(self, output=None, channels: Sequence[str] = DEFAULT_CHANNELS,
                 fmt: OutputFormat = OutputFormat.JSON, delimiter: str = '\n'):
        self.output = output if output is not None else stdout
        self._channels = list(channels)
        self.fmt = OutputFormat(fmt)
        self.delimiter = delimiter
        self._lock = threading.Lock()

    def channels(self) -> List[str]:
        return list(self._channels)

    def _write(self, line: str):
        string = f'{line}{self.delimiter}'
        try:
            self.output.write(string)
        except TypeError:
            self.output.write(string.encode())

    def publish(self, sample: LocationSample, channel: str) -> None:
        lines = format_sample(sample, channel, self.fmt)
        try:
            with self._lock:
                for line in lines:
                    self._write(line)
                flush = getattr(self.output, 'flush', None)
                if flush is not None:
                    flush()
        except (OSError, ValueError) as e:
            raise PublishError(f"Could not write to {channel}: {e}", channel=channel) from e


class FileSink(StreamSink):
    """
    Stream sink backed by a log file that is opened on ``open()`` and closed
    on ``close()``. Without a filename, a timestamped file is created in
    ``logs/`` under the current working directory.
    """

    def __init__(self, filename: Optional[str] = None, channels: Sequence[str] = DEFAULT_CHANNELS,
                 fmt: OutputFormat = OutputFormat.NMEA, delimiter: str = '\n'):
        super().__init__(output=None, channels=channels, fmt=fmt, delimiter=delimiter)
        self.output = None
        self.filename = filename

    def _default_filename(self) -> str:
        timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
        logs_dir = os.path.join(os.getcwd(), "logs")
        os.makedirs(logs_dir, exist_ok=True)
        suffix = "nmea" if self.fmt == OutputFormat.NMEA else "jsonl"
        return os.path.join(logs_dir, f"location_log_{timestamp}.{suffix}")

    def open(self):
        if self.output is not None:
            return
        if self.filename is None:
            self.filename = self._default_filename()
        self.filename = os.path.abspath(self.filename)
        self.output = open(self.filename, 'w', encoding='utf-8', buffering=1)  # Line buffered
        logger.info("Started location logging to %s", self.filename)

    def close(self):
        if self.output is None:
            return
        try:
            self.output.flush()
            self.output.close()
            logger.info("Stopped location logging to %s", self.filename)
        finally:
            self.output = None

    def publish(self, sample: LocationSample, channel: str) -> None:
        if self.output is None:
            raise PublishError("Log file is not open", channel=channel)
        super().publish(sample, channel)


class MemorySink(OutputSink):
    """
    Keeps published samples in memory for consumers that poll, such as a UI
    or a test.
    """

    def __init__(self, channels: Sequence[str] = DEFAULT_CHANNELS, max_samples: Optional[int] = None):
        self._channels = list(channels)
        self.max_samples = max_samples
        self.opened = False
        self.closed = False
        self._published: List[Tuple[str, LocationSample]] = []
        self._stream: List[Tuple[str, LocationSample]] = []
        self._stream_lock = threading.Lock()

    def open(self):
        self.opened = True
        self.closed = False

    def close(self):
        self.closed = True

    def channels(self) -> List[str]:
        return list(self._channels)

    def publish(self, sample: LocationSample, channel: str) -> None:
        with self._stream_lock:
            self._published.append((channel, sample))
            self._stream.append((channel, sample))
            if self.max_samples is not None and len(self._published) > self.max_samples:
                del self._published[:len(self._published) - self.max_samples]

    @property
    def published(self) -> List[Tuple[str, LocationSample]]:
        with self._stream_lock:
            return list(self._published)

    def samples(self, channel: Optional[str] = None) -> List[LocationSample]:
        """Published samples, optionally for one channel only."""
        with self._stream_lock:
            return [s for c, s in self._published if channel is None or c == channel]

    def get_new_samples(self) -> List[Tuple[str, LocationSample]]:
        """All (channel, sample) pairs published since the last call."""
        with self._stream_lock:
            new_samples = self._stream.copy()
            self._stream.clear()
            return new_samples

    def counts(self) -> Dict[str, int]:
        with self._stream_lock:
            result: Dict[str, int] = {}
            for channel, _ in self._published:
                result[channel] = result.get(channel, 0) + 1
            return result
