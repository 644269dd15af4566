"""Engine settings.

Settings are an explicit value handed to the engine; there is no process-wide
configuration object.
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Mapping

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from nodeflow.errors import ConfigurationError


class EngineSettings(BaseModel):
    """Knobs for the execution engine.

    Attributes:
        critical_key: Node data key that marks a node as critical. A critical
            node's failure aborts the rest of the run.
        reserved_data_keys: Node data keys that are display-only and never
            turned into static inputs.
        check_required_inputs: Fail a node whose executor declares a required
            input port that resolves to nothing.
        trace: Write diagnostic trace lines to stderr.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    critical_key: str = Field(default="critical", min_length=1)
    reserved_data_keys: frozenset[str] = frozenset({"label", "description"})
    check_required_inputs: bool = True
    trace: bool = True

    @classmethod
    def from_file(cls, path: str | Path) -> EngineSettings:
        """Load settings from a JSON file.

        Raises:
            FileNotFoundError: If the file does not exist
            ConfigurationError: If the file is not valid settings JSON
        """
        path = Path(path)
        try:
            raw = json.loads(path.read_text(encoding="utf-8"))
            return cls.model_validate(raw)
        except (json.JSONDecodeError, ValidationError) as exc:
            raise ConfigurationError(f"invalid settings file {path}: {exc}") from exc

    def is_critical(self, data: Mapping[str, Any]) -> bool:
        return bool(data.get(self.critical_key))

    def is_static_key(self, key: str) -> bool:
        """Whether a node data key may be synthesized into a static input."""
        return key not in self.reserved_data_keys and not key.startswith("_")
