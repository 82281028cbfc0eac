"""
Schema Validation - JSON Schema validation of resource specs.

Provides the schema for Seq API key specs and functions to validate specs
against it.
"""

import logging
from typing import Any, Dict, Optional, Tuple

from jsonschema import Draft7Validator, ValidationError

logger = logging.getLogger(__name__)

API_KEY_SPEC_SCHEMA: Dict[str, Any] = {
    "type": "object",
    "required": ["title"],
    "additionalProperties": False,
    "properties": {
        "title": {
            "type": "string",
            "minLength": 1,
            "description": "Human-friendly title for the API key.",
        },
        "owner_id": {
            "type": "string",
            "description": "Owner principal id. Defaults to the caller.",
        },
        "permissions": {
            "type": "array",
            "uniqueItems": True,
            "items": {"type": "string", "minLength": 1},
            "description": (
                "Permissions delegated to the API key "
                "(e.g. Read, Write, Ingest, Project, System)."
            ),
        },
    },
}


def validate_spec_against_schema(
    spec: Dict[str, Any], schema: Dict[str, Any]
) -> Tuple[bool, Optional[str]]:
    """
    Validate a resource spec against a JSON Schema.

    Args:
        spec: The resource specification to validate
        schema: The JSON Schema to validate against

    Returns:
        Tuple of (is_valid, error_message)
    """
    try:
        validator = Draft7Validator(schema, format_checker=Draft7Validator.FORMAT_CHECKER)
        errors = sorted(
            validator.iter_errors(spec),
            key=lambda e: ".".join(str(p) for p in e.absolute_path),
        )

        if not errors:
            return True, None

        # Collect all validation errors
        error_messages = []
        for error in errors:
            path = ".".join(str(p) for p in error.absolute_path) or "(root)"
            error_messages.append(f"{path}: {error.message}")

        return False, "; ".join(error_messages)

    except ValidationError as e:
        return False, f"Validation error: {str(e)}"
    except Exception as e:
        logger.error(f"Unexpected error during validation: {e}")
        return False, f"Validation failed: {str(e)}"


def validate_api_key_spec(spec: Dict[str, Any]) -> Tuple[bool, Optional[str]]:
    """
    Validate a Seq API key spec.

    Args:
        spec: The API key spec (title, owner_id, permissions)

    Returns:
        Tuple of (is_valid, error_message)
    """
    if not isinstance(spec, dict):
        return False, "(root): spec must be an object"
    return validate_spec_against_schema(spec, API_KEY_SPEC_SCHEMA)
