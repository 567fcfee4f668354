"""JSON file persistence for the planning workspace."""

from __future__ import annotations

import json
from pathlib import Path

from minka.workspace import Workspace

DEFAULT_DB_FILE = "minka.json"


class Store:
    """Reads and writes the workspace database (JSON file)."""

    def __init__(self, db_path: str | Path = DEFAULT_DB_FILE):
        self.db_path = Path(db_path)

    def exists(self) -> bool:
        return self.db_path.exists()

    def load(self) -> Workspace | None:
        """Return the saved workspace, or None when no file exists yet."""
        if not self.db_path.exists():
            return None
        raw = json.loads(self.db_path.read_text())
        return Workspace.from_dict(raw)

    def save(self, workspace: Workspace) -> None:
        """Persist the workspace to disk."""
        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        self.db_path.write_text(json.dumps(workspace.to_dict(), indent=4))
