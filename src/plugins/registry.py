"""
Plugin Registry - Lookup of action plugins by name.

Manifests name the action plugin that owns each resource. The registry maps
that name to a plugin class, and hands out one initialized instance per name
for the life of the process.
"""

import logging
from importlib.metadata import entry_points
from typing import Any, Dict, Optional, Type

from plugins.actions.base import ActionPlugin

logger = logging.getLogger(__name__)

ENTRY_POINT_GROUP = "seq_operator.actions"


class PluginRegistry:
    """Registered action plugin classes and their initialized instances."""

    def __init__(self):
        self._classes: Dict[str, Type[ActionPlugin]] = {}
        self._info: Dict[str, Dict[str, str]] = {}
        self._env_configs: Dict[str, Dict[str, Any]] = {}
        self._instances: Dict[str, ActionPlugin] = {}

    def register_action_plugin(self, plugin_class: Type[ActionPlugin]) -> None:
        """
        Register an action plugin class under its own name.

        Registering the same class twice is a no-op; a different class with
        a taken name replaces the old one.
        """
        probe = plugin_class()
        name, version = probe.name, probe.version

        existing = self._classes.get(name)
        if existing is plugin_class:
            return
        if existing is not None:
            logger.warning(f"Overwriting existing action plugin: {name}")
            self._instances.pop(name, None)

        self._classes[name] = plugin_class
        self._info[name] = {"name": name, "version": version}
        self._env_configs[name] = plugin_class.load_config_from_env()
        logger.info(f"Registered action plugin: {name} v{version}")

    async def get_action_plugin(
        self, name: str, config: Optional[Dict[str, Any]] = None
    ) -> ActionPlugin:
        """
        Get the initialized plugin instance for a name.

        The first call initializes the plugin with its environment config,
        overlaid with the non-None values of ``config``. Later calls return
        the same instance and ignore ``config``.

        Raises:
            ValueError: If no plugin is registered under the name
        """
        if name not in self._classes:
            available = ", ".join(self._classes) or "none"
            raise ValueError(
                f"Unknown action plugin: {name}. Available plugins: {available}"
            )

        plugin = self._instances.get(name)
        if plugin is None:
            merged = dict(self._env_configs[name])
            merged.update({k: v for k, v in (config or {}).items() if v is not None})
            plugin = self._classes[name]()
            await plugin.initialize(merged)
            self._instances[name] = plugin
            logger.info(f"Initialized action plugin: {name}")

        return plugin

    def list_action_plugins(self) -> list[str]:
        return list(self._classes)

    def has_action_plugin(self, name: str) -> bool:
        return name in self._classes

    def get_action_plugin_info(self, name: str) -> Optional[Dict[str, str]]:
        """Name and version of a registered plugin, or None."""
        return self._info.get(name)

    def get_action_plugin_config(self, name: str) -> Dict[str, Any]:
        """Environment config captured at registration ({} when unknown)."""
        return self._env_configs.get(name, {})


_registry: Optional[PluginRegistry] = None


def get_registry() -> PluginRegistry:
    """Get the process-wide registry, creating it on first use."""
    global _registry
    if _registry is None:
        _registry = PluginRegistry()
    return _registry


def reset_registry() -> None:
    """Drop the process-wide registry and every cached plugin instance."""
    global _registry
    _registry = None


def register_builtin_plugins() -> None:
    """
    Register the Seq API key plugin, then any action plugins installed under
    the ``seq_operator.actions`` entry point group.

    A third-party plugin that fails to load is logged and skipped.
    """
    from plugins.actions.seq_api_key import SeqApiKeyPlugin

    registry = get_registry()
    registry.register_action_plugin(SeqApiKeyPlugin)

    for ep in entry_points(group=ENTRY_POINT_GROUP):
        try:
            registry.register_action_plugin(ep.load())
        except Exception as e:
            logger.warning(f"Could not load action plugin {ep.name}: {e}")
