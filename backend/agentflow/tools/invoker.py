# Copyright (c) 2025 adcl.io
# All Rights Reserved.
#
# This software is proprietary and confidential. Unauthorized copying,
# distribution, or use of this software is strictly prohibited.

"""
Tool Invoker

Executes a single tool call over HTTP: parameter binding, authentication,
per-attempt timeout, retries with exponential backoff, response mapping.
"""

import asyncio
import json
import time
import uuid
from typing import Any, Dict, Optional, Tuple
from urllib.parse import quote

import httpx

from agentflow.core.config import get_config
from agentflow.core.logging import get_engine_logger, log_event
from agentflow.templates import get_nested_value
from .auth import OAuthTokenProvider, apply_authentication
from .exceptions import (
    ToolError,
    ToolAuthError,
    ToolConfigurationError,
    ToolHTTPError,
    ToolNetworkError,
    ToolTimeoutError,
)
from .models import ExecutionStatus, Tool, ToolAttempt, ToolExecution, ToolResult
from .parameters import bind_parameters

logger = get_engine_logger("tools")

BODY_METHODS = {"POST", "PUT", "PATCH"}


def map_response(raw: Any, mapping: Optional[Dict[str, str]]) -> Any:
    """
    Project a raw response through ``responseMapping``.

    ``mapping`` is ``{output_key: "dotted.path.in.response"}``; a path of
    ``""`` or ``"$"`` selects the whole response. No mapping passes the
    raw response through unchanged.
    """
    if not mapping:
        return raw
    return {
        key: raw if path in ("", "$") else get_nested_value(raw, path)
        for key, path in mapping.items()
    }


def _expand_endpoint(endpoint: str, params: Dict[str, Any]) -> Tuple[str, Dict[str, Any]]:
    """Replace ``{name}`` placeholders; returns the URL and the unused params"""
    remaining = dict(params)
    url = endpoint
    for name, value in params.items():
        placeholder = "{" + name + "}"
        if placeholder in url:
            url = url.replace(placeholder, quote(str(value), safe=""))
            remaining.pop(name)
    return url, remaining


def _query_value(value: Any) -> Any:
    if isinstance(value, (dict, list)):
        return json.dumps(value)
    return value


class ToolInvoker:
    """
    Invokes tools against their HTTP endpoints.

    Safe to share between concurrent runs: keeps no per-run state.
    """

    def __init__(
        self,
        client: Optional[httpx.AsyncClient] = None,
        token_provider: Optional[OAuthTokenProvider] = None,
        default_timeout: Optional[float] = None,
        base_delay: Optional[float] = None,
        max_delay: Optional[float] = None,
    ):
        config = get_config()
        self._owns_client = client is None
        self.client = client or httpx.AsyncClient()
        self.token_provider = token_provider
        self.default_timeout = default_timeout if default_timeout is not None else config.tool_timeout
        self.base_delay = base_delay if base_delay is not None else config.retry_base_delay
        self.max_delay = max_delay if max_delay is not None else config.retry_max_delay

    async def invoke(
        self,
        tool: Tool,
        params: Dict[str, Any],
        retries: Optional[int] = None,
        cancel_event: Optional[asyncio.Event] = None,
    ) -> ToolResult:
        """
        Invoke ``tool`` with ``params``.

        Args:
            tool: Tool definition
            params: Parameter values before binding
            retries: Retry count used when the tool does not set its own
            cancel_event: Stops further retries once set

        Returns:
            ToolResult with the mapped output and its ToolExecution

        Raises:
            ToolError: Last failure; its ``execution`` holds the record
        """
        execution = ToolExecution(
            id=str(uuid.uuid4()),
            tool_id=tool.id,
            status=ExecutionStatus.RUNNING,
            input=params,
        )
        started = time.monotonic()

        try:
            bound = bind_parameters(tool, params)
        except ToolError as e:
            self._finish(execution, started, error=e)
            raise

        execution.input = bound
        timeout = tool.config.timeout or self.default_timeout
        if tool.config.retries is not None:
            max_retries = tool.config.retries
        else:
            max_retries = retries or 0
        attempts = max_retries + 1

        last_error: Optional[ToolError] = None
        for attempt in range(1, attempts + 1):
            attempt_started = time.monotonic()
            try:
                raw = await asyncio.wait_for(self._send(tool, bound, timeout), timeout=timeout)
            except asyncio.TimeoutError:
                last_error = ToolTimeoutError(tool.id, timeout)
            except ToolError as e:
                last_error = e
            else:
                execution.attempts.append(ToolAttempt(
                    attempt=attempt,
                    status=ExecutionStatus.COMPLETED,
                    duration=self._elapsed_ms(attempt_started),
                ))
                output = map_response(raw, tool.config.response_mapping)
                self._finish(execution, started, output=output)
                return ToolResult(output=output, execution=execution)

            execution.attempts.append(ToolAttempt(
                attempt=attempt,
                status=ExecutionStatus.FAILED,
                error=last_error.message,
                status_code=getattr(last_error, "status_code", None),
                duration=self._elapsed_ms(attempt_started),
            ))

            if not last_error.retryable or attempt == attempts:
                break
            if cancel_event is not None and cancel_event.is_set():
                break

            delay = min(self.base_delay * (2 ** (attempt - 1)), self.max_delay)
            log_event(
                logger, "tool_retry", level="WARNING",
                tool_id=tool.id, attempt=attempt, attempts=attempts,
                delay=delay, error=last_error.message,
            )
            if await self._sleep(delay, cancel_event):
                break

        self._finish(execution, started, error=last_error)
        raise last_error

    async def _send(self, tool: Tool, params: Dict[str, Any], timeout: float) -> Any:
        """Perform one HTTP attempt and decode the response"""
        config = tool.config
        if not config.endpoint:
            raise ToolConfigurationError(f"Tool '{tool.id}' has no endpoint configured", tool_id=tool.id)

        method = (config.method or "GET").upper()
        url, remaining = _expand_endpoint(config.endpoint, params)
        if not url.startswith(("http://", "https://")):
            raise ToolConfigurationError(f"Invalid endpoint URL: {url}", tool_id=tool.id)

        headers = dict(config.headers)
        query: Dict[str, Any] = {}
        try:
            await apply_authentication(config.authentication, headers, query, tool.id, self.token_provider)
        except ToolError:
            raise
        except Exception as e:
            raise ToolAuthError(f"Failed to obtain credentials: {e}", tool_id=tool.id) from e

        body = None
        if method in BODY_METHODS:
            body = remaining
        else:
            query.update({key: _query_value(value) for key, value in remaining.items()})

        try:
            response = await self.client.request(
                method,
                url,
                headers=headers,
                params=query or None,
                json=body,
                timeout=timeout,
            )
        except httpx.TimeoutException as e:
            raise ToolTimeoutError(tool.id, timeout) from e
        except httpx.RequestError as e:
            raise ToolNetworkError(f"Tool '{tool.id}' unreachable: {e}", tool_id=tool.id) from e

        if response.status_code in (401, 403):
            error = ToolAuthError(
                f"Tool '{tool.id}' rejected credentials: HTTP {response.status_code}",
                tool_id=tool.id,
            )
            error.status_code = response.status_code
            raise error
        if response.status_code >= 400:
            raise ToolHTTPError(tool.id, response.status_code, response.reason_phrase)

        if not response.content:
            return None
        if "json" in response.headers.get("content-type", ""):
            try:
                return response.json()
            except ValueError:
                return response.text
        return response.text

    async def _sleep(self, delay: float, cancel_event: Optional[asyncio.Event]) -> bool:
        """Back off for ``delay`` seconds; True if cancelled meanwhile"""
        if cancel_event is None:
            await asyncio.sleep(delay)
            return False
        try:
            await asyncio.wait_for(cancel_event.wait(), timeout=delay)
        except asyncio.TimeoutError:
            return False
        return True

    def _finish(
        self,
        execution: ToolExecution,
        started: float,
        output: Any = None,
        error: Optional[ToolError] = None,
    ) -> None:
        execution.execution_time = self._elapsed_ms(started)
        if error is None:
            execution.status = ExecutionStatus.COMPLETED
            execution.output = output
        else:
            execution.status = ExecutionStatus.FAILED
            execution.error = error.message
            error.execution = execution

    @staticmethod
    def _elapsed_ms(started: float) -> float:
        return round((time.monotonic() - started) * 1000, 3)

    async def close(self) -> None:
        """Close HTTP client if this invoker created it"""
        if self._owns_client:
            await self.client.aclose()

    async def __aenter__(self) -> "ToolInvoker":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.close()
