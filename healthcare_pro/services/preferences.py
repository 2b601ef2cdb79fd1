"""File-backed preferences store.

One JSON file per user under PREFERENCES_DIR. The lifecycle is explicit:
``init`` creates the directory, ``load`` reads (defaults when absent),
``save`` writes the whole document atomically.
"""
import json
import logging
import os
import re
from pathlib import Path
from typing import Any, Dict, Optional

from pydantic import ValidationError as SchemaError

from healthcare_pro import config
from healthcare_pro.schemas.preferences import Preferences
from healthcare_pro.utils.exceptions import PersistenceError, ValidationError

logger = logging.getLogger("healthcare_pro")

_SAFE_NAME = re.compile(r"[^A-Za-z0-9_.-]")


class PreferencesStore:
    def __init__(self, root: Optional[Path] = None):
        self.root = Path(root or config.PREFERENCES_DIR)
        self._ready = False

    def init(self) -> "PreferencesStore":
        try:
            self.root.mkdir(parents=True, exist_ok=True)
        except OSError as exc:
            raise PersistenceError("Could not create preferences directory", {"path": str(self.root)}) from exc
        self._ready = True
        return self

    def path_for(self, user_id: str) -> Path:
        return self.root / f"{_SAFE_NAME.sub('_', str(user_id))}.json"

    def load(self, user_id: str) -> Preferences:
        path = self.path_for(user_id)
        if not path.exists():
            return Preferences()
        try:
            data = json.loads(path.read_text(encoding="utf-8"))
            return Preferences.model_validate(data)
        except (OSError, ValueError) as exc:
            # Includes pydantic's ValidationError (a ValueError subclass)
            logger.warning({"function": "preferences_load", "path": str(path), "error": str(exc)})
            return Preferences()

    def save(self, user_id: str, prefs: Preferences) -> Preferences:
        if not self._ready:
            self.init()
        path = self.path_for(user_id)
        tmp = path.with_suffix(".json.tmp")
        try:
            tmp.write_text(prefs.model_dump_json(indent=2), encoding="utf-8")
            os.replace(tmp, path)
        except OSError as exc:
            logger.error({"function": "preferences_save", "path": str(path), "error": str(exc)})
            raise PersistenceError("Could not save preferences") from exc
        return prefs

    def update(self, user_id: str, changes: Dict[str, Any]) -> Preferences:
        """Merge ``changes`` into the stored preferences. An explicit ``None`` resets that field to its default."""
        current = self.load(user_id).model_dump()
        defaults = Preferences().model_dump()
        for key, value in changes.items():
            current[key] = defaults.get(key) if value is None else value
        try:
            prefs = Preferences.model_validate(current)
        except SchemaError as exc:
            raise ValidationError("Invalid preferences", exc.errors(include_url=False, include_context=False)) from exc
        return self.save(user_id, prefs)


_store: Optional[PreferencesStore] = None


def get_preferences_store() -> PreferencesStore:
    global _store
    if _store is None:
        _store = PreferencesStore().init()
    return _store
