"""
YAML config loader with schema validation.

Loads hyperparameters and world configuration from a YAML file and
validates against JSON schemas.
"""

import yaml
import json
from pathlib import Path
from typing import Optional
import jsonschema

from .constants import SCHEMA_DIR
from .data_types import Hyperparameters, WorldConfig, SimulationSettings


class DataLoadError(Exception):
    """Raised when data loading or validation fails"""
    pass


def load_yaml(file_path: Path) -> dict:
    """Load YAML file and return parsed dict"""
    file_path = Path(file_path)
    if not file_path.exists():
        raise DataLoadError(f"File not found: {file_path}")

    try:
        with open(file_path, 'r') as f:
            return yaml.safe_load(f) or {}
    except yaml.YAMLError as e:
        raise DataLoadError(f"YAML parse error in {file_path}: {e}")


def load_schema(schema_path: Path) -> Optional[dict]:
    """Load a JSON schema; returns None if the file does not exist"""
    if not schema_path.exists():
        return None

    try:
        with open(schema_path, 'r') as f:
            return json.load(f)
    except json.JSONDecodeError as e:
        raise DataLoadError(f"Invalid JSON schema {schema_path}: {e}")


def validate_against_schema(data: dict, schema_path: Path, data_path):
    """Validate data dict against JSON schema"""
    schema = load_schema(schema_path)
    if schema is None:
        # Schema validation optional (custom schema dirs may omit some files)
        return

    try:
        jsonschema.validate(instance=data, schema=schema)
    except jsonschema.ValidationError as e:
        location = "/".join(str(p) for p in e.absolute_path)
        raise DataLoadError(f"Validation error in {data_path} at '{location}': {e.message}")


def parse_hyperparameters(data: dict) -> Hyperparameters:
    hyperparams = Hyperparameters()
    hyperparams.load_json_obj(data)
    return hyperparams


def parse_world_config(data: dict) -> WorldConfig:
    try:
        return WorldConfig(**data)
    except TypeError as e:
        raise DataLoadError(f"Invalid world config: {e}")


def load_settings(file_path: Path, schema_dir: Optional[Path] = SCHEMA_DIR) -> SimulationSettings:
    """
    Load simulation settings from YAML.

    Args:
        file_path: YAML file with optional 'hyperparameters' and 'world' sections
        schema_dir: Directory holding config.schema.json (None = skip validation)

    Returns:
        SimulationSettings
    """
    data = load_yaml(file_path)

    # Validate if schema available
    if schema_dir:
        schema_path = Path(schema_dir) / "config.schema.json"
        validate_against_schema(data, schema_path, file_path)

    return SimulationSettings(
        hyperparameters=parse_hyperparameters(data.get('hyperparameters', {})),
        world=parse_world_config(data.get('world', {})),
        description=data.get('description')
    )
