"""
Plugin system for the Seq operator.

This package provides the plugin architecture for extensible resource actions.
"""

from plugins.base import ActionPhase, ActionResult, ActionContext, DriftResult
from plugins.registry import PluginRegistry, get_registry

__all__ = [
    "ActionPhase",
    "ActionResult",
    "ActionContext",
    "DriftResult",
    "PluginRegistry",
    "get_registry",
]
