"""Reports degraded pipeline stages to logs and an optional JSON Lines file."""
import json
import logging
import threading
from collections import Counter
from datetime import datetime, timezone
from pathlib import Path
from typing import Dict, Optional

from models.error import ServiceError

logger = logging.getLogger(__name__)


class FailureReporter:
    """
    Collects failures the chat pipeline recovered from.

    Every report is logged as a structured warning; when log_file_path is
    set it is also appended as one JSON object per line.
    """

    def __init__(self, log_file_path: Optional[str] = None):
        self.log_file_path = log_file_path
        self._counts: Counter = Counter()
        self._lock = threading.Lock()
        self._file = None

        if log_file_path:
            Path(log_file_path).parent.mkdir(parents=True, exist_ok=True)
            self._file = open(log_file_path, "a", encoding="utf-8")
            logger.info(f"FailureReporter writing to {log_file_path}")

    def report(self, stage: str, error: ServiceError) -> None:
        """
        Record a recovered failure.

        Args:
            stage: Pipeline stage that degraded (embedding, retrieval, generation, persistence)
            error: Structured error from that stage
        """
        logger.warning(
            f"Pipeline stage '{stage}' degraded: {error.code} - {error.message}",
            extra={"stage": stage, "error_code": error.code, "error_details": error.details}
        )

        entry = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "stage": stage,
            "code": error.code,
            "message": error.message,
            "details": error.details,
        }

        with self._lock:
            self._counts[stage] += 1
            if self._file is not None:
                try:
                    self._file.write(json.dumps(entry, default=str) + "\n")
                    self._file.flush()
                except OSError as e:
                    logger.error(f"Failed to write failure report: {e}")

    def counts(self) -> Dict[str, int]:
        """Failures reported so far, per stage."""
        with self._lock:
            return dict(self._counts)

    def close(self) -> None:
        with self._lock:
            if self._file is not None:
                self._file.close()
                self._file = None
