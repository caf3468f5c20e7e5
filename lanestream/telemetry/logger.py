"""
JSON Lines telemetry logger.

Provides append-only logging of per-frame lane telemetry for offline analysis.
"""

import json
import logging
import time
import threading
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, List, Optional
from queue import Queue, Full, Empty

from .metrics import FrameMetrics, SystemMetrics

logger = logging.getLogger(__name__)


@dataclass
class TelemetryRecord:
    """
    Complete telemetry record for a single frame.

    Combines frame metrics and system metrics into one record.
    """
    timestamp: str  # ISO 8601
    frame: Dict[str, Any]
    fps: float
    system: Optional[Dict[str, Any]] = None

    def to_json(self) -> str:
        """Serialize to a compact JSON string."""
        data = {"timestamp": self.timestamp, "fps": self.fps}
        data.update(self.frame)
        if self.system is not None:
            data.update(self.system)
        return json.dumps(data, separators=(",", ":"))

    @classmethod
    def from_metrics(
        cls,
        frame_metrics: FrameMetrics,
        fps: float,
        system_metrics: Optional[SystemMetrics] = None,
    ) -> "TelemetryRecord":
        """Create record from metrics objects."""
        return cls(
            timestamp=datetime.now(timezone.utc).isoformat(),
            frame=frame_metrics.to_dict(),
            fps=round(fps, 1),
            system=system_metrics.to_dict() if system_metrics is not None else None,
        )


class TelemetryLogger:
    """
    Append-only JSON Lines logger for telemetry data.

    Features:
    - Non-blocking writes via background thread
    - Configurable flush interval
    - Records dropped (and counted) when the queue is full
    - Log rotation at configurable size

    Usage:
        telemetry = TelemetryLogger("telemetry.jsonl")
        telemetry.start()

        # In frame loop:
        telemetry.log_frame(frame_metrics, fps)

        # On shutdown:
        telemetry.stop()
    """

    DEFAULT_FLUSH_INTERVAL = 1.0  # seconds
    DEFAULT_MAX_BUFFER = 1000  # records
    DEFAULT_MAX_FILE_SIZE = 100 * 1024 * 1024  # 100 MB

    def __init__(
        self,
        log_file: str,
        flush_interval: float = DEFAULT_FLUSH_INTERVAL,
        max_buffer: int = DEFAULT_MAX_BUFFER,
        max_file_size: int = DEFAULT_MAX_FILE_SIZE,
    ):
        """
        Initialize telemetry logger.

        Args:
            log_file: Path to output .jsonl file
            flush_interval: Seconds between flushes
            max_buffer: Maximum records to queue in memory
            max_file_size: Maximum file size before rotation
        """
        self._log_file = Path(log_file)
        self._flush_interval = flush_interval
        self._max_file_size = max_file_size

        self._queue: "Queue[TelemetryRecord]" = Queue(maxsize=max_buffer)

        self._writer_thread: Optional[threading.Thread] = None
        self._stop_event = threading.Event()
        self._file_handle = None

        self._records_written = 0
        self._records_dropped = 0

    def start(self) -> None:
        """Start the background writer thread."""
        if self._writer_thread is not None and self._writer_thread.is_alive():
            return

        self._stop_event.clear()
        self._writer_thread = threading.Thread(
            target=self._writer_loop,
            name="TelemetryWriter",
            daemon=True,
        )
        self._writer_thread.start()
        logger.info(f"Telemetry logger started: {self._log_file}")

    def stop(self) -> None:
        """Stop the background writer and flush remaining records."""
        self._stop_event.set()

        if self._writer_thread is not None:
            self._writer_thread.join(timeout=5.0)
            self._writer_thread = None

        self._flush_remaining()

        if self._file_handle is not None:
            self._file_handle.close()
            self._file_handle = None

        logger.info(
            f"Telemetry logger stopped. "
            f"Written: {self._records_written}, Dropped: {self._records_dropped}"
        )

    def log(self, record: TelemetryRecord) -> bool:
        """
        Queue a telemetry record (non-blocking).

        Returns:
            True if record was queued, False if dropped
        """
        try:
            self._queue.put_nowait(record)
            return True
        except Full:
            self._records_dropped += 1
            return False

    def log_frame(
        self,
        frame_metrics: FrameMetrics,
        fps: float,
        system_metrics: Optional[SystemMetrics] = None,
    ) -> bool:
        """Convenience method to log frame metrics."""
        return self.log(TelemetryRecord.from_metrics(frame_metrics, fps, system_metrics))

    def _writer_loop(self) -> None:
        """Background thread loop for writing records."""
        buffer: List[str] = []
        last_flush = time.monotonic()

        while not self._stop_event.is_set():
            try:
                record = self._queue.get(timeout=0.1)
                buffer.append(record.to_json())
            except Empty:
                pass

            current_time = time.monotonic()
            should_flush = (
                current_time - last_flush >= self._flush_interval or
                len(buffer) >= 100
            )
            if should_flush and buffer:
                self._write_buffer(buffer)
                buffer.clear()
                last_flush = current_time

        if buffer:
            self._write_buffer(buffer)

    def _write_buffer(self, buffer: List[str]) -> None:
        """Write buffered records to file."""
        try:
            self._check_rotation()

            if self._file_handle is None:
                self._log_file.parent.mkdir(parents=True, exist_ok=True)
                self._file_handle = open(self._log_file, "a", encoding="utf-8")

            for line in buffer:
                self._file_handle.write(line + "\n")

            self._file_handle.flush()
            self._records_written += len(buffer)

        except OSError as e:
            logger.error(f"Telemetry write error: {e}")
            self._records_dropped += len(buffer)

    def _check_rotation(self) -> None:
        """Rotate the log file once it exceeds the size limit."""
        if not self._log_file.exists():
            return

        if self._log_file.stat().st_size < self._max_file_size:
            return

        if self._file_handle is not None:
            self._file_handle.close()
            self._file_handle = None

        timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
        rotated_name = self._log_file.with_suffix(f".{timestamp}.jsonl")

        try:
            self._log_file.rename(rotated_name)
            logger.info(f"Rotated telemetry log to: {rotated_name}")
        except OSError as e:
            logger.error(f"Log rotation failed: {e}")

    def _flush_remaining(self) -> None:
        """Flush any remaining records in queue."""
        buffer: List[str] = []

        while True:
            try:
                buffer.append(self._queue.get_nowait().to_json())
            except Empty:
                break

        if buffer:
            self._write_buffer(buffer)

    @property
    def records_written(self) -> int:
        return self._records_written

    @property
    def records_dropped(self) -> int:
        return self._records_dropped

    def __enter__(self) -> "TelemetryLogger":
        self.start()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.stop()
