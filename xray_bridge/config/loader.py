"""
Bridge configuration file loading.

The bridge file is optional YAML or JSON. Its top level must be a mapping,
and it is checked against the Draft-7 schema shipped in ``schemas/``.
All violations are reported together, one line per key path.
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Callable, Dict, List

import jsonschema
import yaml
from loguru import logger

BRIDGE_SCHEMA_PATH = Path(__file__).parent / "schemas" / "bridge_config_schema.json"

# File suffix -> text parser
PARSERS: Dict[str, Callable[[str], Any]] = {
    ".yaml": yaml.safe_load,
    ".yml": yaml.safe_load,
    ".json": json.loads,
}


class ConfigurationError(Exception):
    """Raised when configuration is missing, invalid or cannot be loaded."""

    def __init__(self, message: str, errors: List[str] | None = None) -> None:
        super().__init__(message)
        self.errors = errors or []


def describe_violations(validator: jsonschema.Draft7Validator, data: Any) -> List[str]:
    """Return one ``[key -> path] message`` line per violation, ordered by path."""
    violations = sorted(
        validator.iter_errors(data),
        key=lambda e: [str(p) for p in e.absolute_path],
    )
    lines = []
    for error in violations:
        where = " -> ".join(str(p) for p in error.absolute_path) or "(root)"
        lines.append(f"[{where}] {error.message}")
    return lines


class ConfigLoader:
    """
    Reads the bridge configuration file and validates it.

    The schema is read and checked once, when the loader is created.

    Usage::

        data = ConfigLoader().load("config/bridge.yaml")
    """

    def __init__(self, schema_path: str | Path = BRIDGE_SCHEMA_PATH) -> None:
        self.schema_path = Path(schema_path)
        try:
            schema = json.loads(self.schema_path.read_text(encoding="utf-8"))
            jsonschema.Draft7Validator.check_schema(schema)
        except (OSError, ValueError, jsonschema.SchemaError) as e:
            raise ConfigurationError(
                f"Unusable configuration schema {self.schema_path}: {e}"
            ) from e
        self._validator = jsonschema.Draft7Validator(schema)

    def load(self, path: str | Path, *, validate: bool = True) -> Dict[str, Any]:
        """
        Load a bridge configuration file.

        Args:
            path: YAML or JSON file.
            validate: Check the data against the bridge schema.

        Returns:
            The configuration mapping ({} for an empty document).

        Raises:
            FileNotFoundError: If the file does not exist.
            ConfigurationError: If the file cannot be read, parsed or validated.
        """
        file_path = Path(path)
        if not file_path.exists():
            raise FileNotFoundError(f"Configuration file not found: {file_path}")

        data = self._parse(file_path)
        if validate:
            self.validate(data, source=file_path.name)

        logger.info(f"Loaded bridge configuration from {file_path}")
        return data

    def validate(self, data: Any, source: str = "configuration") -> None:
        """
        Raise ConfigurationError listing every schema violation in ``data``.

        The individual lines are available as ``errors`` on the exception.
        """
        violations = describe_violations(self._validator, data)
        if not violations:
            return

        details = "\n".join(f"  {line}" for line in violations)
        raise ConfigurationError(
            f"{source} is invalid ({len(violations)} error(s)):\n{details}",
            errors=violations,
        )

    @staticmethod
    def _parse(file_path: Path) -> Dict[str, Any]:
        parse = PARSERS.get(file_path.suffix.lower())
        if parse is None:
            raise ConfigurationError(
                f"Unsupported file format '{file_path.suffix}' for {file_path.name}, "
                f"expected one of: {', '.join(sorted(PARSERS))}"
            )

        try:
            text = file_path.read_text(encoding="utf-8")
        except OSError as e:
            raise ConfigurationError(f"Failed to read {file_path}: {e}") from e

        try:
            data = parse(text)
        except (yaml.YAMLError, ValueError) as e:
            raise ConfigurationError(f"Failed to parse {file_path}: {e}") from e

        if data is None:
            return {}
        if not isinstance(data, dict):
            raise ConfigurationError(
                f"{file_path.name} must contain a mapping at the top level, "
                f"got {type(data).__name__}"
            )
        return data
