"""Unit tests for the Seq API key action plugin."""

from unittest.mock import AsyncMock, patch

import pytest

from client import SeqAPIError, SeqClient
from config import ConfigError
from plugins.actions.base import ActionPlugin
from plugins.actions.seq_api_key import SeqApiKeyPlugin
from plugins.base import ActionContext, ActionPhase
from resources.api_key import ApiKeyModel, ResourceError


@pytest.fixture
def plugin(fake_client):
    plugin = SeqApiKeyPlugin()
    plugin.client = fake_client
    return plugin


def _ctx(spec=None, state=None):
    return ActionContext(
        resource_name="ingest-key",
        spec=spec if spec is not None else {"title": "ingest"},
        state=state or {},
    )


class TestPluginMetadata:
    """Tests for plugin identity."""

    def test_is_action_plugin(self):
        assert isinstance(SeqApiKeyPlugin(), ActionPlugin)

    def test_name_and_version(self):
        plugin = SeqApiKeyPlugin()
        assert plugin.name == "seq_api_key"
        assert plugin.version == "1.0.0"


@pytest.mark.asyncio
class TestInitialize:
    """Tests for SeqApiKeyPlugin.initialize()."""

    async def test_builds_client_from_config(self, mock_client):
        plugin = SeqApiKeyPlugin()
        with patch.object(
            SeqClient, "from_config", AsyncMock(return_value=mock_client)
        ) as from_config:
            await plugin.initialize(
                {"server_url": "http://seq.test", "api_key": "abc"}
            )

        config = from_config.call_args.args[0]
        assert config.server_url == "http://seq.test"
        assert config.api_key == "abc"
        assert plugin.client is mock_client

    async def test_missing_server_url_is_fatal(self):
        plugin = SeqApiKeyPlugin()
        with pytest.raises(ConfigError):
            await plugin.initialize({})
        assert plugin.client is None

    async def test_uninitialized_plugin_fails_apply(self):
        plugin = SeqApiKeyPlugin()
        ctx = _ctx()

        result = await plugin.apply(ctx, await plugin.prepare(ctx))

        assert result.success is False
        assert result.error_message.startswith("Plugin not configured")


@pytest.mark.asyncio
class TestPrepareAndPlan:
    """Tests for prepare() and plan()."""

    async def test_prepare_without_state(self, plugin):
        workspace = await plugin.prepare(_ctx())
        assert workspace["desired"] == ApiKeyModel(title="ingest")
        assert workspace["prior"] is None

    async def test_prepare_with_state(self, plugin, sample_state):
        workspace = await plugin.prepare(_ctx(state=sample_state))
        assert workspace["prior"].id == "k1"
        assert workspace["prior"].token == "tok-123"

    async def test_plan_create(self, plugin):
        ctx = _ctx()
        result = await plugin.plan(ctx, await plugin.prepare(ctx))
        assert result.success is True
        assert result.has_changes is True
        assert "create" in result.plan_output

    async def test_plan_no_changes(self, plugin, sample_state):
        ctx = _ctx(spec={"title": "ingest", "permissions": ["Ingest"]}, state=sample_state)
        result = await plugin.plan(ctx, await plugin.prepare(ctx))
        assert result.has_changes is False
        assert "up to date" in result.plan_output

    async def test_plan_ignores_unset_owner_and_permissions(self, plugin, sample_state):
        ctx = _ctx(spec={"title": "ingest"}, state=sample_state)
        result = await plugin.plan(ctx, await plugin.prepare(ctx))
        assert result.has_changes is False

    async def test_plan_update(self, plugin, sample_state):
        ctx = _ctx(
            spec={"title": "ingest", "permissions": ["Read", "Ingest"]},
            state=sample_state,
        )
        result = await plugin.plan(ctx, await plugin.prepare(ctx))
        assert result.has_changes is True
        assert "permissions" in result.plan_output

    async def test_plan_permission_order_does_not_matter(self, plugin, sample_state):
        state = {**sample_state, "permissions": ["Read", "Ingest"]}
        ctx = _ctx(
            spec={"title": "ingest", "permissions": ["Ingest", "Read"]}, state=state
        )
        result = await plugin.plan(ctx, await plugin.prepare(ctx))
        assert result.has_changes is False


@pytest.mark.asyncio
class TestApply:
    """Tests for apply()."""

    async def test_apply_creates(self, plugin, fake_seq):
        ctx = _ctx(spec={"title": "ingest", "permissions": ["Ingest"]})
        result = await plugin.apply(ctx, await plugin.prepare(ctx))

        assert result.success is True
        assert result.phase == ActionPhase.COMPLETED
        assert result.resources_created == 1
        assert result.outputs["id"] == "apikey-1"
        assert result.outputs["token"] == "tok-1"
        assert "apikey-1" in fake_seq.keys

    async def test_apply_updates_and_keeps_token(self, plugin, fake_seq):
        ctx = _ctx()
        created = await plugin.apply(ctx, await plugin.prepare(ctx))

        ctx = _ctx(spec={"title": "renamed"}, state=created.outputs)
        result = await plugin.apply(ctx, await plugin.prepare(ctx))

        assert result.success is True
        assert result.resources_updated == 1
        assert result.outputs["id"] == "apikey-1"
        assert result.outputs["title"] == "renamed"
        assert result.outputs["token"] == "tok-1"
        assert fake_seq.keys["apikey-1"]["Title"] == "renamed"

    async def test_apply_failure(self, plugin, fake_client):
        fake_client.request.side_effect = SeqAPIError(403, "Forbidden")
        ctx = _ctx()

        result = await plugin.apply(ctx, await plugin.prepare(ctx))

        assert result.success is False
        assert result.phase == ActionPhase.FAILED
        assert result.outputs == {}
        assert result.error_message == (
            "Failed to create Seq API key: seq api returned 403: Forbidden"
        )


@pytest.mark.asyncio
class TestDestroy:
    """Tests for destroy()."""

    async def test_destroy_without_state(self, plugin, fake_client):
        ctx = _ctx()
        result = await plugin.destroy(ctx, await plugin.prepare(ctx))
        assert result.success is True
        assert result.resources_deleted == 0
        fake_client.request.assert_not_called()

    async def test_destroy(self, plugin, fake_seq):
        ctx = _ctx()
        created = await plugin.apply(ctx, await plugin.prepare(ctx))

        ctx = _ctx(state=created.outputs)
        result = await plugin.destroy(ctx, await plugin.prepare(ctx))

        assert result.success is True
        assert result.resources_deleted == 1
        assert fake_seq.keys == {}

    async def test_destroy_already_gone(self, plugin, sample_state):
        ctx = _ctx(state=sample_state)
        result = await plugin.destroy(ctx, await plugin.prepare(ctx))
        assert result.success is True

    async def test_destroy_failure(self, plugin, fake_client, sample_state):
        fake_client.request.side_effect = SeqAPIError(500, "boom")
        ctx = _ctx(state=sample_state)

        result = await plugin.destroy(ctx, await plugin.prepare(ctx))

        assert result.success is False
        assert result.phase == ActionPhase.FAILED
        assert "Failed to delete Seq API key" in result.error_message


@pytest.mark.asyncio
class TestStateAndDrift:
    """Tests for get_state(), get_outputs(), detect_drift() and import."""

    async def _create(self, plugin, spec=None):
        ctx = _ctx(spec=spec)
        return (await plugin.apply(ctx, await plugin.prepare(ctx))).outputs

    async def test_get_state_keeps_token(self, plugin):
        state = await self._create(plugin)
        ctx = _ctx(state=state)

        refreshed = await plugin.get_state(ctx, await plugin.prepare(ctx))

        assert refreshed["token"] == "tok-1"

    async def test_get_state_gone(self, plugin, sample_state):
        ctx = _ctx(state=sample_state)
        assert await plugin.get_state(ctx, await plugin.prepare(ctx)) is None

    async def test_get_state_without_state(self, plugin, fake_client):
        ctx = _ctx()
        assert await plugin.get_state(ctx, await plugin.prepare(ctx)) is None
        fake_client.request.assert_not_called()

    async def test_get_outputs_hides_token(self, plugin, sample_state):
        ctx = _ctx(state=sample_state)
        outputs = await plugin.get_outputs(ctx, await plugin.prepare(ctx))
        assert outputs == {"id": "k1", "title": "ingest", "owner_id": "user-admin"}

    async def test_no_drift(self, plugin):
        state = await self._create(plugin)
        ctx = _ctx(state=state)

        result = await plugin.detect_drift(ctx, await plugin.prepare(ctx))

        assert result.has_drift is False

    async def test_drift_on_remote_change(self, plugin, fake_seq):
        state = await self._create(plugin)
        fake_seq.keys["apikey-1"]["Title"] = "changed-in-ui"
        ctx = _ctx(state=state)

        result = await plugin.detect_drift(ctx, await plugin.prepare(ctx))

        assert result.has_drift is True
        assert result.resources_drifted == 1
        assert "changed-in-ui" in result.drift_details

    async def test_drift_on_remote_delete(self, plugin, sample_state):
        ctx = _ctx(state=sample_state)

        result = await plugin.detect_drift(ctx, await plugin.prepare(ctx))

        assert result.has_drift is True
        assert "no longer exists" in result.drift_details

    async def test_drift_read_error(self, plugin, fake_client, sample_state):
        fake_client.request.side_effect = SeqAPIError(500, "boom")
        ctx = _ctx(state=sample_state)

        result = await plugin.detect_drift(ctx, await plugin.prepare(ctx))

        assert result.has_drift is False
        assert "Failed to read Seq API key" in result.error_message

    async def test_import_resource(self, plugin):
        await self._create(plugin, spec={"title": "legacy"})

        imported = await plugin.import_resource("apikey-1")

        assert imported["id"] == "apikey-1"
        assert imported["title"] == "legacy"
        assert imported["token"] is None

    async def test_import_missing(self, plugin):
        assert await plugin.import_resource("apikey-404") is None

    async def test_health(self, plugin):
        assert await plugin.health() == {"status": "The Seq node is in service."}

    async def test_health_failure(self, plugin, fake_client):
        fake_client.health.side_effect = SeqAPIError(503, "starting")
        with pytest.raises(ResourceError) as exc_info:
            await plugin.health()
        assert exc_info.value.summary == "Failed to query Seq health"
