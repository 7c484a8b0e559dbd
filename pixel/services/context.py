from __future__ import annotations

import json
import logging
import os
from pathlib import Path
from typing import Dict, Optional

from pydantic import ValidationError

from pixel.errors import ContextPersistenceError
from pixel.schemas import ContextEntry, RunType

LOGGER = logging.getLogger("pixel.context")

RunContext = Dict[str, ContextEntry]


class RunContextStore:
    """Record of the branches last compared for each group, backed by a JSON file.

    The whole mapping is rewritten after every update. There is no locking: one
    CLI process owns the file at a time.
    """

    def __init__(self, path: Path) -> None:
        self._path = path
        self._context: RunContext = self.load()

    def load(self) -> RunContext:
        if not self._path.exists():
            return {}
        try:
            with self._path.open("r", encoding="utf-8") as handle:
                raw = json.load(handle)
            if not isinstance(raw, dict):
                raise ValueError("context root must be an object")
            return {str(group): ContextEntry.model_validate(entry) for group, entry in raw.items()}
        except (OSError, ValueError, ValidationError) as exc:
            # A corrupt file counts as no history rather than a fatal error.
            LOGGER.warning("Ignoring unreadable run context %s: %s", self._path, exc)
            return {}

    def get(self, group: str) -> Optional[ContextEntry]:
        return self._context.get(group)

    def snapshot(self) -> RunContext:
        return {group: entry.model_copy() for group, entry in self._context.items()}

    def update(self, group: str, run_type: RunType, identifier: str, description: str) -> ContextEntry:
        run_type = RunType(run_type)
        entry = self._context.get(group)
        if entry is None:
            entry = ContextEntry(description=description)
            self._context[group] = entry
        if run_type is RunType.reference:
            entry.description = description
        setattr(entry, run_type.value, identifier)
        self.save()
        return entry

    def save(self) -> None:
        payload = {group: entry.model_dump() for group, entry in self._context.items()}
        tmp_path = self._path.with_name(self._path.name + ".tmp")
        try:
            self._path.parent.mkdir(parents=True, exist_ok=True)
            with tmp_path.open("w", encoding="utf-8") as handle:
                json.dump(payload, handle, indent=2, sort_keys=True)
            os.replace(tmp_path, self._path)
        except OSError as exc:
            raise ContextPersistenceError(f"Failed to write run context {self._path}: {exc}") from exc
