"""
Action Plugin Base - Abstract interface for managed resources.

An action plugin owns one kind of remote resource (a Seq API key for the
built-in plugin). The host drives it through prepare -> plan -> apply, keeps
whatever apply returns as the recorded state, and hands that state back on
later runs through ActionContext.state.
"""

from abc import ABC, abstractmethod
from typing import Any, Dict, Optional

from plugins.base import ActionContext, ActionResult, DriftResult


class ActionPlugin(ABC):
    """
    Abstract base class for action plugins.

    Lifecycle methods receive the workspace returned by prepare(). Failures
    that the user should see are reported in the returned ActionResult, not
    raised.
    """

    @property
    @abstractmethod
    def name(self) -> str:
        """Name manifests use to select this plugin (e.g. 'seq_api_key')."""

    @property
    @abstractmethod
    def version(self) -> str:
        pass

    @abstractmethod
    async def initialize(self, config: Dict[str, Any]) -> None:
        """
        Set up the plugin from its merged configuration.

        Runs once per process, before any lifecycle call. Invalid
        configuration should raise here rather than on first use.
        """

    @abstractmethod
    async def validate_spec(self, spec: Dict[str, Any]) -> tuple[bool, Optional[str]]:
        """
        Check a manifest spec before anything is sent to the remote system.

        Args:
            spec: The resource specification to validate

        Returns:
            Tuple of (is_valid, error_message). error_message is None when valid.
        """

    @abstractmethod
    async def prepare(self, ctx: ActionContext) -> Any:
        """Build the plugin-specific workspace for one resource."""

    @abstractmethod
    async def plan(self, ctx: ActionContext, workspace: Any) -> ActionResult:
        """
        Work out what apply would change without touching the remote system.

        Returns:
            ActionResult with has_changes set and a readable plan_output.
        """

    @abstractmethod
    async def apply(self, ctx: ActionContext, workspace: Any) -> ActionResult:
        """
        Create or update the resource.

        Returns:
            ActionResult whose outputs hold the new recorded state. On failure
            success is False and outputs is empty; the host keeps the old state.
        """

    @abstractmethod
    async def destroy(self, ctx: ActionContext, workspace: Any) -> ActionResult:
        """Delete the resource. A resource that is already gone is not an error."""

    @abstractmethod
    async def get_outputs(self, ctx: ActionContext, workspace: Any) -> Dict[str, Any]:
        """Non-sensitive values other tooling may consume."""

    @abstractmethod
    async def get_state(
        self, ctx: ActionContext, workspace: Any
    ) -> Optional[Dict[str, Any]]:
        """
        Re-read the recorded resource from the remote system.

        Returns:
            The refreshed recorded state, or None if the resource no longer
            exists.
        """

    async def cleanup(self, workspace: Any) -> None:
        """Release anything prepare() acquired. Called after every lifecycle run."""
        return None

    async def detect_drift(self, ctx: ActionContext, workspace: Any) -> DriftResult:
        """
        Compare recorded state against the remote system without changing it.

        Plugins that cannot do this keep the default, which reports no drift.
        """
        return DriftResult(
            has_drift=False, drift_details="Drift detection not supported"
        )

    async def import_resource(self, identifier: str) -> Optional[Dict[str, Any]]:
        """
        Adopt an existing remote resource by its identifier.

        Returns:
            The recorded state, or None if nothing has that identifier.
        """
        raise ValueError(f"Action plugin {self.name} does not support import")

    async def health(self) -> Dict[str, Any]:
        """Health payload of the remote system."""
        raise ValueError(f"Action plugin {self.name} does not report health")

    @classmethod
    def load_config_from_env(cls) -> Dict[str, Any]:
        """
        Configuration read from the environment when the plugin is registered.

        Explicit configuration passed to the registry overrides these values.
        """
        return {}
