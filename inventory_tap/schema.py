from __future__ import annotations

from functools import lru_cache
from importlib import resources
import json
from typing import Any

from jsonschema import Draft202012Validator

SCHEMA_RESOURCE = "schemas/snapshot.schema.json"


def load_schema() -> dict[str, Any]:
    schema_path = resources.files("inventory_tap").joinpath(SCHEMA_RESOURCE)
    return json.loads(schema_path.read_text(encoding="utf-8"))


@lru_cache(maxsize=1)
def get_validator() -> Draft202012Validator:
    schema = load_schema()
    Draft202012Validator.check_schema(schema)
    return Draft202012Validator(schema=schema)


def validate_snapshot(data: dict[str, Any]) -> list[str]:
    """Schema violations of a serialized snapshot, as readable messages."""
    validator = get_validator()
    errors = sorted(validator.iter_errors(data), key=lambda e: [str(part) for part in e.path])
    return [
        f"{'/'.join(str(part) for part in error.path) or '<root>'}: {error.message}"
        for error in errors
    ]
