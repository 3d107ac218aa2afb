# Copyright (c) 2025 adcl.io
# All Rights Reserved.
#
# This software is proprietary and confidential. Unauthorized copying,
# distribution, or use of this software is strictly prohibited.

"""
Tool authentication - attaches one credential per request.

OAuth tokens come from an injected provider; refreshing them is the
provider's job, not the engine's.
"""

import base64
from typing import Any, Dict, Optional, Protocol

from .models import AuthType, ToolAuthentication
from .exceptions import ToolAuthError

DEFAULT_API_KEY_HEADER = "X-API-Key"


class OAuthTokenProvider(Protocol):
    """Supplies a bearer token for ``oauth`` tools, cached/refreshed externally."""

    async def get_token(self, config: Dict[str, Any]) -> str:
        """Return a valid access token for the given auth config."""


def _first(config: Dict[str, Any], *keys: str) -> Optional[Any]:
    for key in keys:
        if config.get(key):
            return config[key]
    return None


async def apply_authentication(
    auth: ToolAuthentication,
    headers: Dict[str, str],
    query: Dict[str, Any],
    tool_id: str,
    token_provider: Optional[OAuthTokenProvider] = None,
) -> None:
    """
    Inject the credential described by ``auth`` into ``headers``/``query``.

    Raises:
        ToolAuthError: If the credential is missing from the auth config or
            no token provider is available for ``oauth``
    """
    config = auth.config or {}

    if auth.type == AuthType.NONE:
        return

    if auth.type == AuthType.API_KEY:
        key = _first(config, "key", "apiKey", "api_key", "value")
        if not key:
            raise ToolAuthError("api-key authentication requires 'key'", tool_id=tool_id)
        name = _first(config, "header", "headerName", "apiKeyHeader", "name") or DEFAULT_API_KEY_HEADER
        if config.get("in") == "query":
            query[name] = key
        else:
            headers[name] = key
        return

    if auth.type == AuthType.BEARER:
        token = _first(config, "token", "accessToken")
        if not token:
            raise ToolAuthError("bearer authentication requires 'token'", tool_id=tool_id)
        headers["Authorization"] = f"Bearer {token}"
        return

    if auth.type == AuthType.BASIC:
        username = config.get("username")
        password = config.get("password")
        if username is None or password is None:
            raise ToolAuthError("basic authentication requires 'username' and 'password'", tool_id=tool_id)
        credentials = base64.b64encode(f"{username}:{password}".encode()).decode()
        headers["Authorization"] = f"Basic {credentials}"
        return

    if auth.type == AuthType.OAUTH:
        if token_provider is None:
            raise ToolAuthError("oauth authentication requires a token provider", tool_id=tool_id)
        token = await token_provider.get_token(config)
        if not token:
            raise ToolAuthError("oauth token provider returned no token", tool_id=tool_id)
        headers["Authorization"] = f"Bearer {token}"
        return

    raise ToolAuthError(f"Unsupported authentication type: {auth.type}", tool_id=tool_id)
