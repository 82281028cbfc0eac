"""
Seq API Key Action Plugin - Implements ActionPlugin for Seq API keys.

This plugin reconciles API key specs against a Seq server through the
/api/apikeys endpoints, recording the key token returned on creation.
"""

import logging
from typing import Any, Dict, List, Optional

from client import SeqClient
from config import SeqConfig
from plugins.actions.base import ActionPlugin
from plugins.base import ActionContext, ActionPhase, ActionResult, DriftResult
from resources import api_key
from resources.api_key import CLIENT_ERRORS, ApiKeyModel, ResourceError
from validation import validate_api_key_spec

logger = logging.getLogger(__name__)


class SeqApiKeyPlugin(ActionPlugin):
    """
    Action plugin that manages Seq API keys.

    The workspace for a resource holds the desired key (from the spec) and
    the prior key (from recorded state, None when absent).
    """

    def __init__(self):
        self.client: Optional[SeqClient] = None

    @property
    def name(self) -> str:
        return "seq_api_key"

    @property
    def version(self) -> str:
        return "1.0.0"

    async def initialize(self, config: Dict[str, Any]) -> None:
        """
        Initialize the plugin with configuration.

        Raises:
            ConfigError: If the Seq server URL is missing or malformed.
        """
        seq_config = SeqConfig.from_dict(config)
        self.client = await SeqClient.from_config(seq_config)

        if not seq_config.api_key:
            logger.warning(
                "Seq API key not configured. Set SEQ_API_KEY environment variable."
            )

    async def validate_spec(self, spec: Dict[str, Any]) -> tuple[bool, Optional[str]]:
        """Validate that a resource spec is a valid Seq API key spec."""
        return validate_api_key_spec(spec)

    async def prepare(self, ctx: ActionContext) -> Dict[str, Any]:
        """Return a workspace with the desired and prior API key models."""
        prior = ApiKeyModel.from_dict(ctx.state) if ctx.state else None
        return {
            "resource_name": ctx.resource_name,
            "desired": ApiKeyModel.from_dict(ctx.spec),
            "prior": prior if prior is not None and prior.exists else None,
        }

    async def plan(self, ctx: ActionContext, workspace: Dict[str, Any]) -> ActionResult:
        """
        Plan the changes for an API key.

        A key without a recorded id is created; otherwise it is updated when
        the title, or an explicitly set owner or permission set, differs.
        """
        result = ActionResult(phase=ActionPhase.PLANNING, success=True)
        desired: ApiKeyModel = workspace["desired"]
        prior: Optional[ApiKeyModel] = workspace["prior"]

        if prior is None:
            result.has_changes = True
            result.plan_output = f"Will create API key '{desired.title}'"
            return result

        changes = _diff(desired, prior)
        if changes:
            result.has_changes = True
            result.plan_output = f"Will update API key {prior.id}: " + ", ".join(
                changes
            )
        else:
            result.plan_output = f"API key {prior.id} is up to date"

        return result

    async def apply(self, ctx: ActionContext, workspace: Dict[str, Any]) -> ActionResult:
        """Create or update the API key and return the new recorded state."""
        result = ActionResult(phase=ActionPhase.APPLYING)
        desired: ApiKeyModel = workspace["desired"]
        prior: Optional[ApiKeyModel] = workspace["prior"]

        try:
            client = self._get_client()
            if prior is None:
                state = await api_key.create(client, desired)
                result.resources_created = 1
                result.apply_output = f"Created API key {state.id}"
            else:
                state = await api_key.update(client, desired, prior)
                result.resources_updated = 1
                result.apply_output = f"Updated API key {state.id}"
        except ResourceError as e:
            logger.error(f"Error during apply of {ctx.resource_name}: {e}")
            result.phase = ActionPhase.FAILED
            result.error_message = str(e)
            return result

        result.success = True
        result.phase = ActionPhase.COMPLETED
        result.outputs = state.to_dict()
        return result

    async def destroy(
        self, ctx: ActionContext, workspace: Dict[str, Any]
    ) -> ActionResult:
        """Delete the API key. Keys that are already gone count as deleted."""
        result = ActionResult(phase=ActionPhase.DESTROYING)
        prior: Optional[ApiKeyModel] = workspace["prior"]

        if prior is None:
            result.success = True
            result.phase = ActionPhase.COMPLETED
            result.apply_output = "No API key recorded, nothing to delete"
            return result

        try:
            await api_key.delete(self._get_client(), prior)
        except ResourceError as e:
            logger.error(f"Error during destroy of {ctx.resource_name}: {e}")
            result.phase = ActionPhase.FAILED
            result.error_message = str(e)
            return result

        result.success = True
        result.phase = ActionPhase.COMPLETED
        result.resources_deleted = 1
        result.apply_output = f"Deleted API key {prior.id}"
        return result

    async def get_outputs(
        self, ctx: ActionContext, workspace: Dict[str, Any]
    ) -> Dict[str, Any]:
        """Get the non-sensitive outputs of the recorded API key."""
        prior: Optional[ApiKeyModel] = workspace["prior"]
        if prior is None:
            return {}
        return {"id": prior.id, "title": prior.title, "owner_id": prior.owner_id}

    async def get_state(
        self, ctx: ActionContext, workspace: Dict[str, Any]
    ) -> Optional[Dict[str, Any]]:
        """
        Refresh the recorded state from Seq.

        Returns None when nothing is recorded or the key no longer exists.

        Raises:
            ResourceError: If the key cannot be read.
        """
        prior: Optional[ApiKeyModel] = workspace["prior"]
        if prior is None:
            return None

        refreshed = await api_key.read(self._get_client(), prior)
        return refreshed.to_dict() if refreshed is not None else None

    async def detect_drift(
        self, ctx: ActionContext, workspace: Dict[str, Any]
    ) -> DriftResult:
        """Detect drift between the recorded API key and the live one in Seq."""
        result = DriftResult()
        prior: Optional[ApiKeyModel] = workspace["prior"]
        if prior is None:
            return result

        try:
            remote = await api_key.read(self._get_client(), prior)
        except ResourceError as e:
            result.error_message = str(e)
            return result

        if remote is None:
            result.has_drift = True
            result.drift_details = f"API key {prior.id} no longer exists"
            result.resources_drifted = 1
            return result

        changes = _diff(remote, prior)
        if changes:
            result.has_drift = True
            result.drift_details = "Changed outside of seqctl: " + ", ".join(changes)
            result.resources_drifted = 1

        return result

    async def import_resource(self, identifier: str) -> Optional[Dict[str, Any]]:
        """
        Adopt an existing API key by id.

        Returns:
            The recorded state, or None if no key with that id exists.
        """
        imported = await api_key.import_state(self._get_client(), identifier)
        return imported.to_dict() if imported is not None else None

    async def health(self) -> Dict[str, Any]:
        """
        Return the Seq /health payload.

        Raises:
            ResourceError: If the health endpoint cannot be queried.
        """
        client = self._get_client()
        try:
            return await client.health()
        except CLIENT_ERRORS as e:
            raise ResourceError("Failed to query Seq health", str(e)) from e

    def _get_client(self) -> SeqClient:
        if self.client is None:
            raise ResourceError("Plugin not configured", "plugin not initialized")
        return self.client


def _diff(desired: ApiKeyModel, actual: ApiKeyModel) -> List[str]:
    """
    List the attributes where desired differs from actual.

    Owner and permissions only count when desired sets them, so server
    defaults are not reported as changes.
    """
    changes = []
    if desired.title != actual.title:
        changes.append(f"title '{actual.title}' -> '{desired.title}'")
    if desired.owner_id and desired.owner_id != actual.owner_id:
        changes.append(f"owner_id '{actual.owner_id}' -> '{desired.owner_id}'")
    if desired.permissions is not None and desired.permissions != (
        actual.permissions or frozenset()
    ):
        changes.append(
            f"permissions {sorted(actual.permissions or [])} -> "
            f"{sorted(desired.permissions)}"
        )
    return changes
