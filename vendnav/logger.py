"""Navigation session log.

One session per file section. RouteHost records the route lifecycle
("Navigation started", "Step reached", "Approaching step", "Arrived",
"Navigation cancelled"), tracking and speech failures, and a periodic
"STATE" snapshot of tracker, announcer and achievement state. The CLI
adds route calculation failures and the closing summary.
"""

import json
from datetime import datetime
from typing import Optional, Callable


class Logger:
    """Timestamped navigation events: stdout, an append-only file, a callback"""

    def __init__(self, log_path: Optional[str] = None, callback: Optional[Callable] = None,
                 echo: bool = True, destination: Optional[str] = None):
        self.log_path = log_path
        self.callback = callback
        self.echo = echo
        self.destination = destination
        self.file = None
        if log_path:
            self.file = open(log_path, "a", encoding="utf-8")
            self._start_session()

    def _start_session(self):
        target = f" to {self.destination}" if self.destination else ""
        self.file.write(f"\n{'=' * 60}\n")
        self.file.write(f"VendHub navigation session{target} - {datetime.now().isoformat()}\n")
        self.file.write(f"{'=' * 60}\n\n")
        self.file.flush()

    def log(self, event: str, data: Optional[dict] = None):
        """Record one event; data is serialized as JSON with Cyrillic kept readable"""
        line = f"[{datetime.now().isoformat()}] {event}"
        if data:
            line += f" | {json.dumps(data, ensure_ascii=False, default=str)}"
        if self.echo:
            print(line)
        if self.file:
            self.file.write(line + "\n")
            self.file.flush()
        if self.callback:
            self.callback(event, data)

    def close(self):
        if self.file:
            self.file.close()
            self.file = None
