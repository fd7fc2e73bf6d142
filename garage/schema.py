"""JSON schema checks for record collections."""

from pathlib import Path
from typing import Any, Dict, List, Optional

import yaml
from jsonschema import Draft202012Validator

SCHEMA_PATH = Path(__file__).parent / "schema.yaml"

_schema_cache: Dict[str, Any] = {}


def load_schema(path: Optional[Path] = None) -> dict:
    """Load the collection schema document from schema.yaml."""
    schema_path = path or SCHEMA_PATH
    with open(schema_path) as f:
        return yaml.safe_load(f)


def collection_schema(name: str, schema: Optional[dict] = None) -> Optional[dict]:
    """
    Standalone schema for one collection, or None for unknown collections.

    Shared $defs are copied in so '#/$defs/...' references resolve.
    """
    if schema is None:
        if "root" not in _schema_cache:
            _schema_cache["root"] = load_schema()
        schema = _schema_cache["root"]
    body = schema.get("collections", {}).get(name)
    if body is None:
        return None
    result = {"$schema": schema.get("$schema"), "$defs": schema.get("$defs", {})}
    result.update(body)
    return result


def validate_collection(
    name: str, records: List[Dict[str, Any]], schema: Optional[dict] = None
) -> List[str]:
    """Validate records for a collection. Returns a list of error messages."""
    body = collection_schema(name, schema)
    if body is None:
        return []
    validator = Draft202012Validator(body)
    errors = []
    for error in sorted(validator.iter_errors(records), key=lambda e: [str(p) for p in e.path]):
        location = ".".join(str(p) for p in error.path)
        if location:
            errors.append(f"{name}.{location}: {error.message}")
        else:
            errors.append(f"{name}: {error.message}")
    return errors
