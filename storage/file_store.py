"""YAML file persistence shared by the config layer and the FSM storage.

Writes go through a temporary file and ``os.replace`` so a crash never
leaves a half-written file behind.
"""
import logging
import os
from typing import Any, Dict

import yaml

logger = logging.getLogger(__name__)


class YAMLFileStore:
    """Reads and atomically writes one YAML mapping.

    Attributes:
        path: Path to the YAML file
    """
    def __init__(self, path: str) -> None:
        self.path = path

    def exists(self) -> bool:
        return os.path.exists(self.path)

    def read(self) -> Dict[str, Any]:
        """Load the file.

        Returns:
            Parsed mapping, or an empty dict when the file is missing,
            malformed or doesn't hold a mapping
        """
        try:
            with open(self.path, "r", encoding="utf-8") as f:
                data = yaml.safe_load(f)
        except FileNotFoundError:
            return {}
        except (OSError, yaml.YAMLError):
            logger.exception("Failed to read YAML file %s", self.path)
            return {}
        if data is None:
            return {}
        if not isinstance(data, dict):
            logger.error("YAML file %s holds %s, expected a mapping", self.path, type(data).__name__)
            return {}
        return data

    def write(self, data: Dict[str, Any]) -> None:
        """Replace the file contents with ``data``.

        Args:
            data: Mapping of plain YAML-serialisable values
        """
        directory = os.path.dirname(self.path)
        if directory:
            os.makedirs(directory, exist_ok=True)
        tmp_path = self.path + ".tmp"
        with open(tmp_path, "w", encoding="utf-8") as f:
            yaml.safe_dump(data, f, sort_keys=False, allow_unicode=True)
        os.replace(tmp_path, self.path)
