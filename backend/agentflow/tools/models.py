# Copyright (c) 2025 adcl.io
# All Rights Reserved.
#
# This software is proprietary and confidential. Unauthorized copying,
# distribution, or use of this software is strictly prohibited.

"""
Tool Models

Pydantic models for tool definitions and tool invocation records.
"""

from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import Field

from agentflow.schema import CamelModel, utc_now_iso


class ToolType(str, Enum):
    API = "api"
    WEBHOOK = "webhook"
    DATABASE = "database"
    FILE = "file"
    EMAIL = "email"
    CALENDAR = "calendar"
    SOCIAL = "social"
    AI = "ai"
    CUSTOM = "custom"


class ToolCategory(str, Enum):
    COMMUNICATION = "communication"
    DATA = "data"
    AUTOMATION = "automation"
    AI = "ai"
    INTEGRATION = "integration"
    UTILITY = "utility"


class ToolStatus(str, Enum):
    ACTIVE = "active"
    INACTIVE = "inactive"
    ERROR = "error"
    TESTING = "testing"


class AuthType(str, Enum):
    NONE = "none"
    API_KEY = "api-key"
    BEARER = "bearer"
    BASIC = "basic"
    OAUTH = "oauth"


class ExecutionStatus(str, Enum):
    """Lifecycle of a step or tool invocation: pending -> running -> completed|failed"""
    PENDING = "pending"
    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"


class ToolAuthentication(CamelModel):
    """How credentials are attached to a call; ``config`` is opaque to the engine"""
    type: AuthType = AuthType.NONE
    config: Dict[str, Any] = Field(default_factory=dict)


class ToolParameterValidation(CamelModel):
    min: Optional[float] = None
    max: Optional[float] = None
    pattern: Optional[str] = None
    enum: Optional[List[Any]] = None


class ToolParameter(CamelModel):
    """Declared tool input"""
    id: Optional[str] = None
    name: str
    type: str = "string"  # "string", "number", "boolean", "object", "array"
    required: bool = False
    description: str = ""
    default_value: Optional[Any] = None
    validation: Optional[ToolParameterValidation] = None


class ToolConfig(CamelModel):
    endpoint: Optional[str] = None
    method: str = "GET"
    headers: Dict[str, str] = Field(default_factory=dict)
    authentication: ToolAuthentication = Field(default_factory=ToolAuthentication)
    parameters: List[ToolParameter] = Field(default_factory=list)
    response_mapping: Optional[Dict[str, str]] = None
    timeout: Optional[float] = None  # Seconds per attempt, engine default when unset
    retries: Optional[int] = Field(default=None, ge=0)


class Tool(CamelModel):
    """Tool definition - referenced by tool-call nodes through its id"""
    id: str
    name: str
    description: str = ""
    type: ToolType = ToolType.API
    category: ToolCategory = ToolCategory.INTEGRATION
    status: ToolStatus = ToolStatus.ACTIVE
    config: ToolConfig = Field(default_factory=ToolConfig)
    is_built_in: bool = False
    created_at: str = Field(default_factory=utc_now_iso)
    updated_at: str = Field(default_factory=utc_now_iso)
    user_id: Optional[str] = None


class ToolAttempt(CamelModel):
    """Outcome of one attempt within a tool invocation"""
    attempt: int
    status: ExecutionStatus
    error: Optional[str] = None
    status_code: Optional[int] = None
    duration: float = 0.0  # Milliseconds


class ToolExecution(CamelModel):
    """One record per invocation; retries accumulate in ``attempts``"""
    id: str
    tool_id: str
    status: ExecutionStatus = ExecutionStatus.PENDING
    input: Any = None
    output: Any = None
    error: Optional[str] = None
    execution_time: float = 0.0  # Milliseconds
    created_at: str = Field(default_factory=utc_now_iso)
    attempts: List[ToolAttempt] = Field(default_factory=list)


class ToolResult(CamelModel):
    """Successful invocation: mapped output plus its execution record"""
    output: Any = None
    execution: ToolExecution
