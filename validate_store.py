#!/usr/bin/env python3
"""Validate a record store directory against the collection schema."""
import sys
from pathlib import Path

import yaml

from garage.config import load_config
from garage.schema import load_schema, validate_collection
from garage.store import COLLECTIONS


def validate_store_file(filepath: Path, collection: str, schema: dict) -> list[str]:
    """Validate a single collection file. Returns list of errors."""
    errors = []
    try:
        with open(filepath) as f:
            data = yaml.safe_load(f)
        if data is None:
            data = []
        errors.extend(validate_collection(collection, data, schema))
    except yaml.YAMLError as e:
        errors.append(f"YAML parse error: {e}")
    except OSError as e:
        errors.append(f"Error: {e}")
    return errors


def main(argv=None):
    """Validate every collection file in the data directory."""
    argv = sys.argv[1:] if argv is None else argv
    data_dir = Path(argv[0]) if argv else load_config().data_dir
    schema = load_schema()

    if not data_dir.exists():
        print(f"Error: data directory not found: {data_dir}")
        return 1

    all_valid = True
    found = 0
    for collection in COLLECTIONS:
        filepath = data_dir / f"{collection}.yaml"
        if not filepath.exists():
            continue
        found += 1
        errors = validate_store_file(filepath, collection, schema)
        if errors:
            print(f"FAIL: {filepath.name}")
            for error in errors:
                print(f"  {error}")
            all_valid = False
        else:
            print(f"OK: {filepath.name}")

    if not found:
        print(f"Warning: No collection files found in {data_dir}")

    return 0 if all_valid else 1


if __name__ == "__main__":
    sys.exit(main())
