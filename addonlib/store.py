"""Desired-state persistence (addons.json)"""

import json
import logging
import os
import tempfile
from pathlib import Path

from pydantic import ValidationError

from addonlib.exceptions import StateStoreError
from addonlib.models import DesiredEntry, DesiredState

logger = logging.getLogger(__name__)


class DesiredStateStore:
    """Loads and saves the desired-state file as a whole snapshot"""

    def __init__(self, path: Path):
        """
        Initialize store

        Args:
            path: Location of the desired-state JSON file
        """
        self.path = Path(path)

    def load(self) -> DesiredState:
        """
        Load the desired state, creating a default file if none exists

        A file that cannot be parsed is moved aside to `<name>.bak` and
        replaced by the default state.

        Returns:
            DesiredState snapshot
        """
        if not self.path.exists():
            logger.info(f"Creating default desired-state file: {self.path}")
            state = DesiredState()
            self.save(state)
            return state

        try:
            with open(self.path, "r", encoding="utf-8") as f:
                data = json.load(f)
            return DesiredState.model_validate(data if data is not None else {})
        except (ValueError, ValidationError) as e:
            backup = self.path.with_name(self.path.name + ".bak")
            logger.warning(f"Desired-state file {self.path} is invalid ({e}); moving it to {backup}")
            try:
                os.replace(self.path, backup)
            except OSError as move_error:
                raise StateStoreError(f"Failed to move invalid state file aside: {move_error}")
            state = DesiredState()
            self.save(state)
            return state

    def save(self, state: DesiredState) -> None:
        """
        Write the snapshot atomically

        Raises:
            StateStoreError: If the file cannot be written
        """
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            fd, temp_name = tempfile.mkstemp(
                prefix=f".{self.path.name}.",
                suffix=".tmp",
                dir=str(self.path.parent)
            )
            try:
                with os.fdopen(fd, "w", encoding="utf-8") as f:
                    json.dump(state.to_document(), f, indent=2)
                    f.write("\n")
                os.replace(temp_name, self.path)
            except BaseException:
                if os.path.exists(temp_name):
                    os.unlink(temp_name)
                raise
        except OSError as e:
            raise StateStoreError(f"Failed to save desired state to {self.path}: {e}")

        logger.debug(f"Desired state saved: {self.path}")

    def set_enabled(self, name: str, enabled: bool) -> DesiredState:
        """Record an explicit enable/disable request, creating the entry if needed"""
        state = self.load()
        entry = state.addons.get(name) or DesiredEntry()
        state.addons[name] = entry.model_copy(update={"enabled": enabled})
        self.save(state)
        return state

    def set_auto_upgrade(self, auto_upgrade: bool) -> DesiredState:
        state = self.load()
        state.settings = state.settings.model_copy(update={"auto_upgrade": auto_upgrade})
        self.save(state)
        return state
