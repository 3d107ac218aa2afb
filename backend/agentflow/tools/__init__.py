# Copyright (c) 2025 adcl.io
# All Rights Reserved.
#
# This software is proprietary and confidential. Unauthorized copying,
# distribution, or use of this software is strictly prohibited.

"""
Tool definitions and the tool invoker.
"""

from .models import (
    AuthType,
    ExecutionStatus,
    Tool,
    ToolAttempt,
    ToolAuthentication,
    ToolConfig,
    ToolExecution,
    ToolParameter,
    ToolParameterValidation,
    ToolResult,
)
from .exceptions import (
    InvalidParameters,
    ToolAccessDenied,
    ToolAuthError,
    ToolConfigurationError,
    ToolError,
    ToolHTTPError,
    ToolNetworkError,
    ToolNotFoundError,
    ToolTimeoutError,
)
from .auth import OAuthTokenProvider
from .invoker import ToolInvoker, map_response

__all__ = [
    "AuthType",
    "ExecutionStatus",
    "Tool",
    "ToolAttempt",
    "ToolAuthentication",
    "ToolConfig",
    "ToolExecution",
    "ToolParameter",
    "ToolParameterValidation",
    "ToolResult",
    "InvalidParameters",
    "ToolAccessDenied",
    "ToolAuthError",
    "ToolConfigurationError",
    "ToolError",
    "ToolHTTPError",
    "ToolNetworkError",
    "ToolNotFoundError",
    "ToolTimeoutError",
    "OAuthTokenProvider",
    "ToolInvoker",
    "map_response",
]
