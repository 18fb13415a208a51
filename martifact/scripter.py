"""Collection of state scripts bundled into an artifact."""

from __future__ import annotations

import re
from pathlib import PurePath

_SCRIPT_NAME = re.compile(r"([A-Za-z]+)_(Enter|Leave|Error)_[0-9][0-9](_\S+)?")

# Idle, Sync and Download scripts live on the root filesystem and can not
# be shipped inside an artifact.
_AVAILABLE_STATES = frozenset(
    {
        "ArtifactInstall",
        "ArtifactReboot",
        "ArtifactCommit",
        "ArtifactRollback",
        "ArtifactRollbackReboot",
        "ArtifactFailure",
    }
)


class ScriptError(ValueError):
    """Raised when a script is misnamed, unsupported or a duplicate."""


class Scripts:
    """State scripts keyed by their file name."""

    def __init__(self) -> None:
        self._names: dict[str, str] = {}

    def add(self, path: str) -> None:
        name = PurePath(path).name
        match = _SCRIPT_NAME.search(name)
        if match is None:
            raise ScriptError(
                f"Invalid script name: {name!r}. Scripts must have a name on the form:"
                " <STATE_NAME>_<ACTION>_<ORDERING_NUMBER>_<OPTIONAL_DESCRIPTION>."
                " For example: 'Download_Enter_05_wifi-driver' is a valid script name."
            )
        state = match.group(1)
        if state not in _AVAILABLE_STATES:
            raise ScriptError(f"Unsupported script state: {state}")
        if name in self._names:
            raise ScriptError(f"Script already exists: {name}")
        self._names[name] = path

    def paths(self) -> list[str]:
        """Return the paths of all added scripts."""
        return list(self._names.values())

    def __len__(self) -> int:
        return len(self._names)