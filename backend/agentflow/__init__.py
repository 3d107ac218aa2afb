# Copyright (c) 2025 adcl.io
# All Rights Reserved.
#
# This software is proprietary and confidential. Unauthorized copying,
# distribution, or use of this software is strictly prohibited.

"""
agentflow - Workflow execution engine for agent automations.

Executes declarative workflow graphs (nodes + edges), invoking external
tools with authentication, timeouts and retries, and records per-step
and per-run state.
"""

__version__ = "0.1.0"
