# Copyright (c) 2025 adcl.io
# All Rights Reserved.
#
# This software is proprietary and confidential. Unauthorized copying,
# distribution, or use of this software is strictly prohibited.

"""
Service layer - definition storage and run submission.
"""

from .tool_service import ToolService
from .workflow_service import WorkflowService

__all__ = ["ToolService", "WorkflowService"]
