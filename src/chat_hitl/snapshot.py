"""Best-effort snapshot of pending request metadata.

Only what was outstanding is saved, never resolutions, so a restarted
process can show that an agent was left waiting but cannot answer it.
"""

import json
import logging
import os
from pathlib import Path

from .core import DialogRequest

logger = logging.getLogger(__name__)


class SnapshotStore:
    def __init__(self, path: Path) -> None:
        self.path = path

    def save(self, requests: list[DialogRequest]) -> None:
        data = {"dialogs": [r.to_dict() for r in requests]}
        tmp = self.path.with_suffix(self.path.suffix + ".tmp")
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            tmp.write_text(json.dumps(data, indent=2, ensure_ascii=False), encoding="utf-8")
            os.replace(tmp, self.path)
        except OSError as e:
            logger.error("Failed to write snapshot %s: %s", self.path, e)

    def load(self) -> list[DialogRequest]:
        if not self.path.is_file():
            return []
        try:
            data = json.loads(self.path.read_text(encoding="utf-8"))
            return [DialogRequest.from_dict(d) for d in data.get("dialogs", [])]
        except (OSError, ValueError, KeyError, TypeError, AttributeError) as e:
            logger.error("Failed to read snapshot %s: %s", self.path, e)
            return []
