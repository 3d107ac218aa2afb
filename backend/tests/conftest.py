# Copyright (c) 2025 adcl.io
# All Rights Reserved.
#
# This software is proprietary and confidential. Unauthorized copying,
# distribution, or use of this software is strictly prohibited.

"""
Shared fixtures: fast engine configuration and an engine factory wired
to a fake tool registry and a mock HTTP provider.
"""

import copy
from typing import Optional

import httpx
import pytest

from agentflow.core.config import Config
from agentflow.workflow.engine import WorkflowEngine
from tests.helpers import WEATHER_WORKFLOW, FakeToolRegistry, Provider, make_invoker


@pytest.fixture
def config():
    """Fast engine configuration for tests"""
    return Config(
        run_timeout=10.0,
        tool_timeout=5.0,
        retry_base_delay=0.0,
        retry_max_delay=0.0,
        max_node_visits=50,
    )


@pytest.fixture
def weather_workflow():
    return copy.deepcopy(WEATHER_WORKFLOW)


@pytest.fixture
def make_engine(config):
    """Factory: engine wired to a provider and a fake registry"""
    def factory(provider: Optional[Provider] = None, tools=(), run_store=None, workflow_repository=None):
        provider = provider or Provider(lambda request: httpx.Response(200, json={}))
        return WorkflowEngine(
            tool_registry=FakeToolRegistry(*tools),
            run_store=run_store,
            workflow_repository=workflow_repository,
            invoker=make_invoker(provider),
            config=config,
        )
    return factory
