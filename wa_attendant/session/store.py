"""JSON file credential store."""

from __future__ import annotations

import json
import os
from pathlib import Path
from typing import Any

from loguru import logger

from wa_attendant.session.base import CredentialStore


class FileCredentialStore(CredentialStore):
    """Store credentials as one JSON document, replaced atomically on save."""

    def __init__(self, path: Path | str):
        self.path = Path(path).expanduser()

    def load(self) -> dict[str, Any] | None:
        if not self.path.exists():
            return None
        try:
            data = json.loads(self.path.read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError) as e:
            logger.warning(f"Ignoring unreadable credentials at {self.path}: {e}")
            return None
        if not isinstance(data, dict):
            logger.warning(f"Ignoring malformed credentials at {self.path}")
            return None
        return data

    def save(self, credentials: dict[str, Any]) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        tmp_path = self.path.with_suffix(self.path.suffix + ".tmp")
        tmp_path.write_text(json.dumps(credentials, indent=2), encoding="utf-8")
        os.chmod(tmp_path, 0o600)
        tmp_path.replace(self.path)

    def clear(self) -> bool:
        removed = False
        for path in (self.path, self.path.with_suffix(self.path.suffix + ".tmp")):
            if path.exists():
                path.unlink()
                removed = True
        return removed
