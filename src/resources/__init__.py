"""
Seq resources package.

Each module implements the create/read/update/delete/import lifecycle for one
Seq resource type.
"""

from resources.api_key import (
    ApiKeyModel,
    ApiKeyResponse,
    PreconditionError,
    ResourceError,
)

__all__ = ["ApiKeyModel", "ApiKeyResponse", "PreconditionError", "ResourceError"]
