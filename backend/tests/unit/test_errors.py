# Copyright (c) 2025 adcl.io
# All Rights Reserved.
#
# This software is proprietary and confidential. Unauthorized copying,
# distribution, or use of this software is strictly prohibited.

"""
Unit tests for API-level errors
"""

from agentflow.core.errors import AgentFlowError, ConflictError, NotFoundError, ValidationError


def test_not_found_to_dict():
    error = NotFoundError("Workflow", "weather")

    assert error.to_dict() == {
        "error": "NotFoundError",
        "message": "Workflow not found: weather",
        "status_code": 404,
        "details": {"resource": "Workflow", "id": "weather"},
    }


def test_status_codes():
    assert ValidationError("bad id", field="id").status_code == 400
    assert ValidationError("bad id", field="id").details == {"field": "id"}
    assert ConflictError("exists", resource="Tool").status_code == 409
    assert AgentFlowError("boom").status_code == 500
    assert AgentFlowError("teapot", status_code=418).status_code == 418
