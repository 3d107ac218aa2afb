# Copyright (c) 2025 adcl.io
# All Rights Reserved.
#
# This software is proprietary and confidential. Unauthorized copying,
# distribution, or use of this software is strictly prohibited.

"""
Tests for ToolInvoker - binding, authentication, retries and response mapping
"""

import base64
import json
from unittest.mock import AsyncMock

import httpx
import pytest

from agentflow.tools import (
    ExecutionStatus,
    InvalidParameters,
    Tool,
    ToolAuthError,
    ToolConfig,
    ToolConfigurationError,
    ToolHTTPError,
    ToolNetworkError,
    ToolParameter,
    map_response,
)
from tests.helpers import Provider, make_invoker, weather_tool


def ok(payload=None):
    return Provider(lambda request: httpx.Response(200, json=payload if payload is not None else {}))


def api_tool(**config):
    config.setdefault("endpoint", "https://api.example.com/items")
    return Tool(id="items", name="Items", config=ToolConfig(**config))


class TestRequests:

    @pytest.mark.asyncio
    async def test_get_sends_query_parameters(self):
        provider = ok({"tempC": 18})
        invoker = make_invoker(provider)

        result = await invoker.invoke(weather_tool(), {"city": "Paris"})

        assert result.output == {"tempC": 18}
        request = provider.requests[0]
        assert request.method == "GET"
        assert request.url.host == "weather.example.com"
        assert request.url.params["city"] == "Paris"
        assert result.execution.status == ExecutionStatus.COMPLETED
        assert result.execution.tool_id == "get_weather"
        assert len(result.execution.attempts) == 1

    @pytest.mark.asyncio
    async def test_post_sends_json_body(self):
        provider = ok({"id": 7})
        invoker = make_invoker(provider)
        tool = api_tool(method="POST", headers={"X-Trace": "abc"})

        await invoker.invoke(tool, {"name": "widget", "tags": ["a", "b"]})

        request = provider.requests[0]
        assert request.method == "POST"
        assert json.loads(request.content) == {"name": "widget", "tags": ["a", "b"]}
        assert request.headers["X-Trace"] == "abc"

    @pytest.mark.asyncio
    async def test_endpoint_placeholders(self):
        provider = ok()
        invoker = make_invoker(provider)
        tool = api_tool(endpoint="https://api.example.com/items/{item_id}")

        await invoker.invoke(tool, {"item_id": "a b", "verbose": True})

        url = provider.requests[0].url
        assert url.raw_path.startswith(b"/items/a%20b")
        assert url.params["verbose"] == "true"
        assert "item_id" not in url.params

    @pytest.mark.asyncio
    async def test_text_response(self):
        provider = Provider(lambda request: httpx.Response(200, text="plain"))
        invoker = make_invoker(provider)

        result = await invoker.invoke(api_tool(), {})

        assert result.output == "plain"

    @pytest.mark.asyncio
    async def test_empty_response(self):
        provider = Provider(lambda request: httpx.Response(204))
        invoker = make_invoker(provider)

        result = await invoker.invoke(api_tool(), {})

        assert result.output is None

    @pytest.mark.asyncio
    async def test_response_mapping(self):
        provider = ok({"current": {"temp": 21, "wind": {"speed": 4}}, "meta": "x"})
        invoker = make_invoker(provider)
        tool = api_tool(responseMapping={"tempC": "current.temp", "wind": "current.wind.speed", "raw": "$"})

        result = await invoker.invoke(tool, {})

        assert result.output["tempC"] == 21
        assert result.output["wind"] == 4
        assert result.output["raw"]["meta"] == "x"

    @pytest.mark.asyncio
    async def test_missing_endpoint(self):
        invoker = make_invoker(ok())
        tool = Tool(id="broken", name="Broken")

        with pytest.raises(ToolConfigurationError, match="no endpoint"):
            await invoker.invoke(tool, {})

    @pytest.mark.asyncio
    async def test_invalid_parameters_skip_the_request(self):
        provider = ok()
        invoker = make_invoker(provider)

        with pytest.raises(InvalidParameters) as exc_info:
            await invoker.invoke(weather_tool(), {"city": 42})

        assert exc_info.value.errors == ["'city' must be of type string, got int"]
        assert exc_info.value.execution.status == ExecutionStatus.FAILED
        assert provider.calls == 0


class TestRetries:

    @pytest.mark.asyncio
    async def test_server_errors_are_retried(self):
        responses = [httpx.Response(502), httpx.Response(429), httpx.Response(200, json={"ok": True})]
        provider = Provider(lambda request: responses.pop(0))
        invoker = make_invoker(provider)

        result = await invoker.invoke(api_tool(), {}, retries=2)

        assert result.output == {"ok": True}
        assert provider.calls == 3
        assert [a.status_code for a in result.execution.attempts] == [502, 429, None]

    @pytest.mark.asyncio
    async def test_client_errors_are_not_retried(self):
        provider = Provider(lambda request: httpx.Response(400))
        invoker = make_invoker(provider)

        with pytest.raises(ToolHTTPError) as exc_info:
            await invoker.invoke(api_tool(), {}, retries=3)

        assert exc_info.value.status_code == 400
        assert provider.calls == 1

    @pytest.mark.asyncio
    async def test_unauthorized_is_not_retried(self):
        provider = Provider(lambda request: httpx.Response(401))
        invoker = make_invoker(provider)

        with pytest.raises(ToolAuthError, match="rejected credentials: HTTP 401"):
            await invoker.invoke(api_tool(), {}, retries=3)

        assert provider.calls == 1

    @pytest.mark.asyncio
    async def test_tool_retries_override_caller(self):
        provider = Provider(lambda request: httpx.Response(503))
        invoker = make_invoker(provider)

        with pytest.raises(ToolHTTPError) as exc_info:
            await invoker.invoke(api_tool(retries=1), {}, retries=5)

        assert provider.calls == 2
        assert len(exc_info.value.execution.attempts) == 2

    @pytest.mark.asyncio
    async def test_network_errors_are_retried(self):
        def unreachable(request):
            raise httpx.ConnectError("connection refused", request=request)

        provider = Provider(unreachable)
        invoker = make_invoker(provider)

        with pytest.raises(ToolNetworkError, match="unreachable"):
            await invoker.invoke(api_tool(), {}, retries=1)

        assert provider.calls == 2


class TestAuthentication:

    @pytest.mark.asyncio
    async def test_api_key_header(self):
        provider = ok()
        invoker = make_invoker(provider)
        tool = api_tool(authentication={"type": "api-key", "config": {"key": "secret"}})

        await invoker.invoke(tool, {})

        assert provider.requests[0].headers["X-API-Key"] == "secret"

    @pytest.mark.asyncio
    async def test_api_key_query(self):
        provider = ok()
        invoker = make_invoker(provider)
        tool = api_tool(authentication={
            "type": "api-key",
            "config": {"key": "secret", "name": "appid", "in": "query"},
        })

        await invoker.invoke(tool, {})

        assert provider.requests[0].url.params["appid"] == "secret"
        assert "X-API-Key" not in provider.requests[0].headers

    @pytest.mark.asyncio
    async def test_bearer(self):
        provider = ok()
        invoker = make_invoker(provider)
        tool = api_tool(authentication={"type": "bearer", "config": {"token": "t0k"}})

        await invoker.invoke(tool, {})

        assert provider.requests[0].headers["Authorization"] == "Bearer t0k"

    @pytest.mark.asyncio
    async def test_basic(self):
        provider = ok()
        invoker = make_invoker(provider)
        tool = api_tool(authentication={"type": "basic", "config": {"username": "u", "password": "p"}})

        await invoker.invoke(tool, {})

        expected = base64.b64encode(b"u:p").decode()
        assert provider.requests[0].headers["Authorization"] == f"Basic {expected}"

    @pytest.mark.asyncio
    async def test_oauth_uses_token_provider(self):
        provider = ok()
        token_provider = AsyncMock()
        token_provider.get_token.return_value = "oauth-token"
        invoker = make_invoker(provider, token_provider=token_provider)
        tool = api_tool(authentication={"type": "oauth", "config": {"clientId": "abc"}})

        await invoker.invoke(tool, {})

        assert provider.requests[0].headers["Authorization"] == "Bearer oauth-token"
        token_provider.get_token.assert_awaited_once_with({"clientId": "abc"})

    @pytest.mark.asyncio
    async def test_oauth_without_provider(self):
        provider = ok()
        invoker = make_invoker(provider)
        tool = api_tool(authentication={"type": "oauth", "config": {}})

        with pytest.raises(ToolAuthError, match="requires a token provider"):
            await invoker.invoke(tool, {})

        assert provider.calls == 0

    @pytest.mark.asyncio
    async def test_missing_credential(self):
        invoker = make_invoker(ok())
        tool = api_tool(authentication={"type": "bearer", "config": {}})

        with pytest.raises(ToolAuthError, match="requires 'token'"):
            await invoker.invoke(tool, {})


def test_map_response_without_mapping():
    raw = {"a": 1}
    assert map_response(raw, None) is raw
    assert map_response(raw, {}) is raw


def test_map_response_missing_path():
    assert map_response({"a": 1}, {"b": "x.y"}) == {"b": None}


def test_declared_parameter_model():
    param = ToolParameter.model_validate({"name": "city", "required": True, "defaultValue": "Paris"})
    assert param.default_value == "Paris"
