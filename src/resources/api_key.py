"""
Seq API key resource - create/read/update/delete/import against /api/apikeys.

Each operation takes the shared client plus desired configuration and/or the
previously recorded state, and returns the new recorded state. Seq only
returns the key token when the key is created, so a token that was recorded
once is never cleared by a later read or update.

Ref: https://datalust.co/docs/server-http-api#api-apikeys
"""

import asyncio
import logging
from dataclasses import dataclass, field, replace
from typing import Any, Dict, FrozenSet, Optional

import aiohttp

from client import SeqAPIError, SeqClient, SeqDecodeError

logger = logging.getLogger(__name__)

API_KEYS_PATH = "/api/apikeys"

# Errors raised by the client that are reported back to the caller
CLIENT_ERRORS = (
    SeqAPIError,
    SeqDecodeError,
    aiohttp.ClientError,
    asyncio.TimeoutError,
)


class ResourceError(Exception):
    """User-visible failure with a short title and the underlying message."""

    def __init__(self, summary: str, detail: str):
        self.summary = summary
        self.detail = detail
        super().__init__(f"{summary}: {detail}")


class PreconditionError(ResourceError):
    """Raised before any network call when recorded state is insufficient."""


@dataclass(frozen=True)
class ApiKeyModel:
    """Recorded (or desired) state of a Seq API key."""

    id: Optional[str] = None
    title: Optional[str] = None
    token: Optional[str] = field(default=None, repr=False)
    owner_id: Optional[str] = None
    permissions: Optional[FrozenSet[str]] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ApiKeyModel":
        """Build a model from a manifest spec or a recorded state dict."""
        permissions = data.get("permissions")
        return cls(
            id=data.get("id") or None,
            title=data.get("title"),
            token=data.get("token") or None,
            owner_id=data.get("owner_id") or None,
            permissions=frozenset(permissions) if permissions is not None else None,
        )

    def to_dict(self) -> Dict[str, Any]:
        """Serialize for recorded state; permissions are sorted for stable output."""
        return {
            "id": self.id,
            "title": self.title,
            "token": self.token,
            "owner_id": self.owner_id,
            "permissions": (
                sorted(self.permissions) if self.permissions is not None else None
            ),
        }

    @property
    def exists(self) -> bool:
        return bool(self.id)


@dataclass(frozen=True)
class ApiKeyResponse:
    """An API key as returned by Seq. Empty values mean "not provided"."""

    id: str = ""
    title: str = ""
    token: str = field(default="", repr=False)
    owner_id: str = ""
    permissions: Optional[FrozenSet[str]] = None

    @classmethod
    def from_json(cls, data: Optional[Dict[str, Any]]) -> "ApiKeyResponse":
        if not isinstance(data, dict):
            return cls()
        permissions = data.get("Permissions")
        return cls(
            id=data.get("Id") or "",
            title=data.get("Title") or "",
            token=data.get("Token") or "",
            owner_id=data.get("OwnerId") or "",
            permissions=frozenset(permissions) if permissions is not None else None,
        )


def _api_key_path(identifier: str) -> str:
    return f"{API_KEYS_PATH}/{identifier}"


def build_request_body(desired: ApiKeyModel) -> Dict[str, Any]:
    """
    Build the create/update payload from desired configuration.

    OwnerId is only sent when set to a non-empty value and Permissions only
    when they are set, so server defaults apply otherwise.

    Raises:
        ResourceError: If the title is missing.
    """
    if not desired.title:
        raise ResourceError(
            "Invalid Seq API key configuration", "title must be a non-empty string"
        )

    body: Dict[str, Any] = {"Title": desired.title}

    if desired.owner_id:
        body["OwnerId"] = desired.owner_id

    if desired.permissions is not None:
        body["Permissions"] = sorted(desired.permissions)

    return body


def apply_response(state: ApiKeyModel, response: ApiKeyResponse) -> ApiKeyModel:
    """
    Merge a Seq response into state.

    Only non-empty response fields are copied, so a response that omits a
    field (the token in particular) never clears the recorded value.
    """
    changes: Dict[str, Any] = {}
    if response.id:
        changes["id"] = response.id
    if response.title:
        changes["title"] = response.title
    if response.token:
        changes["token"] = response.token
    if response.owner_id:
        changes["owner_id"] = response.owner_id
    if response.permissions:
        changes["permissions"] = response.permissions
    return replace(state, **changes)


async def create(client: SeqClient, desired: ApiKeyModel) -> ApiKeyModel:
    """
    Create an API key and return the recorded state.

    Raises:
        ResourceError: If the payload is invalid or Seq rejects the request.
    """
    body = build_request_body(desired)

    try:
        created = await client.request("POST", API_KEYS_PATH, body)
    except CLIENT_ERRORS as e:
        raise ResourceError("Failed to create Seq API key", str(e)) from e

    state = replace(desired, id=None)
    state = apply_response(state, ApiKeyResponse.from_json(created))
    if not state.exists:
        raise ResourceError(
            "Failed to create Seq API key", "response did not include an id"
        )
    logger.info(f"Created Seq API key {state.id} ({state.title})")
    return state


async def read(client: SeqClient, state: ApiKeyModel) -> Optional[ApiKeyModel]:
    """
    Refresh recorded state from Seq.

    Returns:
        The refreshed state, or None when the key has no recorded id or no
        longer exists remotely.

    Raises:
        ResourceError: For any failure other than a 404.
    """
    if not state.exists:
        return None

    try:
        got = await client.request("GET", _api_key_path(state.id))
    except SeqAPIError as e:
        if e.is_not_found:
            logger.info(f"Seq API key {state.id} no longer exists, removing")
            return None
        raise ResourceError("Failed to read Seq API key", str(e)) from e
    except CLIENT_ERRORS as e:
        raise ResourceError("Failed to read Seq API key", str(e)) from e

    return apply_response(state, ApiKeyResponse.from_json(got))


async def update(
    client: SeqClient, desired: ApiKeyModel, prior: ApiKeyModel
) -> ApiKeyModel:
    """
    Update an API key in place; the id recorded in prior state is kept.

    Raises:
        PreconditionError: If prior state has no id.
        ResourceError: If the payload is invalid or Seq rejects the request.
    """
    if not prior.exists:
        raise PreconditionError(
            "Missing id", "Cannot update API key without an id in state"
        )

    body = build_request_body(desired)

    try:
        updated = await client.request("PUT", _api_key_path(prior.id), body)
    except CLIENT_ERRORS as e:
        raise ResourceError("Failed to update Seq API key", str(e)) from e

    # Seq does not return the token on update; start from the recorded one
    state = replace(
        desired,
        id=prior.id,
        token=prior.token,
        owner_id=desired.owner_id or prior.owner_id,
    )
    state = apply_response(state, ApiKeyResponse.from_json(updated))
    logger.info(f"Updated Seq API key {state.id} ({state.title})")
    return state


async def delete(client: SeqClient, prior: ApiKeyModel) -> None:
    """
    Delete an API key. Missing ids and 404 responses are treated as success.

    Raises:
        ResourceError: For any failure other than a 404.
    """
    if not prior.exists:
        return

    try:
        await client.request("DELETE", _api_key_path(prior.id))
    except SeqAPIError as e:
        if e.is_not_found:
            logger.info(f"Seq API key {prior.id} already deleted")
            return
        raise ResourceError("Failed to delete Seq API key", str(e)) from e
    except CLIENT_ERRORS as e:
        raise ResourceError("Failed to delete Seq API key", str(e)) from e

    logger.info(f"Deleted Seq API key {prior.id}")


async def import_state(client: SeqClient, identifier: str) -> Optional[ApiKeyModel]:
    """Adopt an existing API key by id; the rest of the state comes from a read."""
    return await read(client, ApiKeyModel(id=identifier))
