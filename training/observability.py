"""
Training event log.

Appends one JSON object per line to a status file that can be tailed while
training runs. Every event carries an ISO timestamp under "ts".
"""

import json
import threading
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

from training.stats_recorder import TrainingStats


class EventLog:
    """Thread-safe JSONL writer for training events.

    Attributes:
        path: JSONL file, created on first write
    """

    def __init__(self, path: Union[str, Path]):
        self.path = Path(path)
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self._lock = threading.Lock()

    def log_event(self, event: str, **fields: Any) -> None:
        record: Dict[str, Any] = {"event": event, **fields}
        record["ts"] = datetime.now().isoformat()
        with self._lock:
            with open(self.path, "a") as f:
                f.write(json.dumps(record, default=str) + "\n")

    def epoch_finished(
        self,
        stats: TrainingStats,
        training_metrics: Optional[Dict[str, float]] = None,
    ) -> None:
        self.log_event(
            "epoch_finished",
            **stats.to_dict(),
            training=training_metrics,
        )

    def state_changed(self, state: str) -> None:
        self.log_event("state_changed", state=state)

    def command_failed(self, command: str, message: str) -> None:
        self.log_event("command_failed", command=command, message=message)

    def read_events(self) -> List[Dict[str, Any]]:
        """All events written so far, oldest first."""
        if not self.path.exists():
            return []
        with self._lock:
            with open(self.path, "r") as f:
                return [json.loads(line) for line in f if line.strip()]
