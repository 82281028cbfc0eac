"""
Manifest loading - resource documents read from YAML or JSON files.

A manifest document names a resource, the action plugin that manages it and
its spec:

    name: ingest-key
    action_plugin: seq_api_key
    spec:
      title: ingest
      permissions: [Ingest]
"""

import json
import re
from typing import Any, Dict, List

import yaml
from pydantic import BaseModel, Field, ValidationError, field_validator

MAX_NAME_LENGTH = 63
NAME_PATTERN = re.compile(r"^[a-z0-9]([a-z0-9-]{0,61}[a-z0-9])?$")


class ManifestError(ValueError):
    """Raised when a manifest file cannot be parsed."""


def validate_name_format(value: str, field_name: str) -> str:
    """Validate that a name follows Kubernetes naming conventions."""
    if not value:
        raise ValueError(f"{field_name} cannot be empty")
    if len(value) > MAX_NAME_LENGTH:
        raise ValueError(f"{field_name} cannot exceed {MAX_NAME_LENGTH} characters")
    if not NAME_PATTERN.match(value):
        raise ValueError(
            f"{field_name} must consist of lowercase alphanumeric characters or '-', "
            f"must start and end with an alphanumeric character"
        )
    return value


class ResourceManifest(BaseModel):
    """A single resource document."""

    name: str = Field(..., description="Resource name", examples=["ingest-key"])
    action_plugin: str = Field(
        default="seq_api_key", description="Action plugin managing the resource"
    )
    spec: Dict[str, Any] = Field(..., description="Resource specification")

    @field_validator("name")
    @classmethod
    def validate_name(cls, v: str) -> str:
        return validate_name_format(v, "name")


def parse_documents(documents: List[Any], source: str) -> List[ResourceManifest]:
    """
    Parse raw documents into manifests, skipping empty YAML documents.

    Raises:
        ManifestError: If a document is invalid or a name is repeated.
    """
    manifests: List[ResourceManifest] = []
    seen = set()

    for index, document in enumerate(documents):
        if document is None:
            continue
        try:
            manifest = ResourceManifest.model_validate(document)
        except ValidationError as e:
            raise ManifestError(f"{source}: document {index}: {e}") from e

        if manifest.name in seen:
            raise ManifestError(f"{source}: duplicate resource name '{manifest.name}'")
        seen.add(manifest.name)
        manifests.append(manifest)

    return manifests


def load_manifests(filename: str) -> List[ResourceManifest]:
    """
    Load resource manifests from a YAML (multi-document) or JSON file.

    Raises:
        ManifestError: If the file cannot be parsed.
    """
    with open(filename, "r") as f:
        try:
            if filename.endswith(".yaml") or filename.endswith(".yml"):
                documents = list(yaml.safe_load_all(f))
            else:
                data = json.load(f)
                documents = data if isinstance(data, list) else [data]
        except (yaml.YAMLError, json.JSONDecodeError) as e:
            raise ManifestError(f"{filename}: {e}") from e

    return parse_documents(documents, filename)
