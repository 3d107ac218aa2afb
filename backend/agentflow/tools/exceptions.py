# Copyright (c) 2025 adcl.io
# All Rights Reserved.
#
# This software is proprietary and confidential. Unauthorized copying,
# distribution, or use of this software is strictly prohibited.

"""
Tool Invocation Exceptions
"""

from typing import List, Optional


class ToolError(Exception):
    """Base exception for tool invocation failures"""
    retryable = False

    def __init__(self, message: str, tool_id: Optional[str] = None):
        self.message = message
        self.tool_id = tool_id
        self.execution = None  # ToolExecution, attached by the invoker
        super().__init__(message)


class ToolNotFoundError(ToolError):
    """Raised when a tool-call references an unknown tool"""
    def __init__(self, tool_id: str):
        super().__init__(f"Tool not found: {tool_id}", tool_id=tool_id)


class InvalidParameters(ToolError):
    """Raised when bound parameters violate the tool's declared contract"""
    def __init__(self, tool_id: str, errors: List[str]):
        self.errors = errors
        super().__init__(
            f"Invalid parameters for tool '{tool_id}': {'; '.join(errors)}",
            tool_id=tool_id
        )


class ToolTimeoutError(ToolError):
    """Raised when an attempt exceeds the tool timeout"""
    retryable = True

    def __init__(self, tool_id: str, timeout: float):
        self.timeout = timeout
        super().__init__(f"Tool '{tool_id}' timed out after {timeout}s", tool_id=tool_id)


class ToolNetworkError(ToolError):
    """Raised when the provider cannot be reached"""
    retryable = True


class ToolHTTPError(ToolError):
    """Raised when the provider answers with a non-2xx status"""

    def __init__(self, tool_id: str, status_code: int, reason: str = ""):
        self.status_code = status_code
        message = f"Tool '{tool_id}' request failed: HTTP {status_code}"
        if reason:
            message += f" {reason}"
        super().__init__(message, tool_id=tool_id)

    @property
    def retryable(self) -> bool:
        # 5xx, request timeout and rate limiting are transient
        return self.status_code >= 500 or self.status_code in (408, 429)


class ToolAuthError(ToolError):
    """Raised on authorization failures (401/403) or unusable credentials"""
    pass


class ToolConfigurationError(ToolError):
    """Raised when the tool definition cannot produce a request"""
    pass


class ToolAccessDenied(ToolError):
    """Raised when a run calls a user-owned tool belonging to someone else"""

    def __init__(self, tool_id: str):
        super().__init__(f"Access denied to tool '{tool_id}'", tool_id=tool_id)
