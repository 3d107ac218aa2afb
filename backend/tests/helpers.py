# Copyright (c) 2025 adcl.io
# All Rights Reserved.
#
# This software is proprietary and confidential. Unauthorized copying,
# distribution, or use of this software is strictly prohibited.

"""
Test helpers: fake tool registry, call-counting HTTP providers built on
httpx.MockTransport, and builders for workflow documents.
"""

from typing import Any, Callable, Dict, List, Optional

import httpx

from agentflow.tools import Tool, ToolConfig, ToolInvoker, ToolNotFoundError, ToolParameter


class FakeToolRegistry:
    """In-memory tool registry"""

    def __init__(self, *tools: Tool):
        self.tools = {tool.id: tool for tool in tools}

    async def get_tool(self, tool_id: str) -> Tool:
        if tool_id not in self.tools:
            raise ToolNotFoundError(tool_id)
        return self.tools[tool_id]


class Provider:
    """Call-counting tool provider; ``handler`` builds each response"""

    def __init__(self, handler: Callable):
        self.handler = handler
        self.requests: List[httpx.Request] = []

    async def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        response = self.handler(request)
        if not isinstance(response, httpx.Response):
            response = await response
        return response

    @property
    def calls(self) -> int:
        return len(self.requests)

    def client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(transport=httpx.MockTransport(self))


def make_invoker(provider: Provider, **kwargs) -> ToolInvoker:
    kwargs.setdefault("base_delay", 0.0)
    kwargs.setdefault("max_delay", 0.0)
    kwargs.setdefault("default_timeout", 5.0)
    return ToolInvoker(client=provider.client(), **kwargs)


def weather_tool(**config: Any) -> Tool:
    """GET weather tool with one required ``city`` parameter"""
    return Tool(
        id="get_weather",
        name="Get weather",
        config=ToolConfig(
            endpoint="https://weather.example.com/current",
            method="GET",
            parameters=[ToolParameter(id="city", name="city", type="string", required=True)],
            **config,
        ),
    )


WEATHER_WORKFLOW: Dict[str, Any] = {
    "id": "weather",
    "name": "Weather lookup",
    "nodes": [
        {"id": "start", "type": "start", "data": {"label": "Start"}},
        {
            "id": "get-weather",
            "type": "tool-call",
            "data": {
                "label": "Get weather",
                "config": {"toolId": "get_weather", "parameterValues": {"city": "{{input.city}}"}},
            },
        },
        {"id": "end", "type": "terminal", "data": {"label": "End"}},
    ],
    "edges": [
        {"id": "e1", "source": "start", "target": "get-weather"},
        {"id": "e2", "source": "get-weather", "target": "end"},
    ],
}


def node(node_id: str, node_type: str, **config: Any) -> Dict[str, Any]:
    data: Dict[str, Any] = {"label": node_id}
    if config:
        data["config"] = config
    return {"id": node_id, "type": node_type, "data": data}


def edge(source: str, target: str, condition: Optional[str] = None, **extra: Any) -> Dict[str, Any]:
    result: Dict[str, Any] = {"id": f"{source}-{target}", "source": source, "target": target}
    if condition is not None:
        result["data"] = {"condition": condition}
    result.update(extra)
    return result


def workflow(nodes: List[Dict[str, Any]], edges: List[Dict[str, Any]], **settings: Any) -> Dict[str, Any]:
    result = {"nodes": nodes, "edges": edges}
    if settings:
        result["settings"] = settings
    return result
