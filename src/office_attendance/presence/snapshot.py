from __future__ import annotations

import json
import logging
import os
import tempfile
from datetime import datetime
from pathlib import Path
from typing import Mapping

from ..common.datetime_utils import parse_rfc3339, to_rfc3339
from ..core.exceptions import SnapshotCorrupt, StorageError

logger = logging.getLogger(__name__)


class LiveStateSnapshot:
    """JSON mirror of the open-visit map, used only to recover after a restart.

    The file maps tag id -> RFC 3339 sign-in time. Writes go to a temp file
    in the same directory and are renamed over the target, so concurrent
    savers never leave a torn file: the last rename wins.
    """

    def __init__(self, path: str | Path):
        self._path = Path(path)

    @property
    def path(self) -> Path:
        return self._path

    def save(self, state: Mapping[str, datetime]) -> None:
        payload = {tag: to_rfc3339(start) for tag, start in sorted(state.items())}
        tmp_name = None
        try:
            self._path.parent.mkdir(parents=True, exist_ok=True)
            fd, tmp_name = tempfile.mkstemp(
                prefix=f".{self._path.name}.", suffix=".tmp", dir=self._path.parent
            )
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                json.dump(payload, f, indent=2)
                f.flush()
                os.fsync(f.fileno())
            os.replace(tmp_name, self._path)
        except OSError as exc:
            if tmp_name and os.path.exists(tmp_name):
                os.unlink(tmp_name)
            raise StorageError(f"Could not write snapshot {self._path}: {exc}") from exc

    def load(self) -> dict[str, datetime]:
        try:
            raw = self._path.read_text(encoding="utf-8")
        except FileNotFoundError:
            logger.info("No snapshot at %s, starting with an empty room", self._path)
            return {}
        except OSError as exc:
            raise StorageError(f"Could not read snapshot {self._path}: {exc}") from exc

        if not raw.strip():
            return {}

        try:
            data = json.loads(raw)
        except json.JSONDecodeError as exc:
            raise SnapshotCorrupt(f"Snapshot {self._path} is not valid JSON: {exc}") from exc
        if not isinstance(data, dict):
            raise SnapshotCorrupt(f"Snapshot {self._path} must be a JSON object")

        state: dict[str, datetime] = {}
        for tag, value in data.items():
            try:
                state[str(tag)] = parse_rfc3339(value)
            except (TypeError, ValueError) as exc:
                raise SnapshotCorrupt(f"Snapshot {self._path} has a bad time for {tag!r}: {value!r}") from exc
        return state
