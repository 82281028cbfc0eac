"""
Core plugin types and dataclasses.

This module contains shared types used across the plugin system.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Optional
import hashlib
import json


class ActionPhase(Enum):
    """Standard phases for action execution."""

    PENDING = "pending"
    PLANNING = "planning"
    APPLYING = "applying"
    DESTROYING = "destroying"
    COMPLETED = "completed"
    FAILED = "failed"


@dataclass
class ActionResult:
    """Standard result from action plugin execution."""

    success: bool = False
    phase: ActionPhase = ActionPhase.PENDING
    plan_output: str = ""
    apply_output: str = ""
    error_message: Optional[str] = None
    resources_created: int = 0
    resources_updated: int = 0
    resources_deleted: int = 0
    outputs: Dict[str, Any] = field(default_factory=dict)
    has_changes: bool = False


@dataclass
class ActionContext:
    """
    Context passed to action plugins during execution.

    ``spec`` is the desired configuration from the manifest and ``state`` the
    recorded state persisted by the host (empty when the resource is absent).
    """

    resource_name: str
    spec: Dict[str, Any]
    state: Dict[str, Any] = field(default_factory=dict)


@dataclass
class DriftResult:
    """Result from drift detection."""

    has_drift: bool = False
    drift_details: str = ""
    resources_drifted: int = 0
    error_message: Optional[str] = None


def calculate_spec_hash(spec: Dict[str, Any]) -> str:
    """Calculate a hash of the resource specification for change detection."""
    spec_string = json.dumps(spec, sort_keys=True)
    return hashlib.sha256(spec_string.encode()).hexdigest()
