# Copyright (c) 2025 adcl.io
# All Rights Reserved.
#
# This software is proprietary and confidential. Unauthorized copying,
# distribution, or use of this software is strictly prohibited.

"""
FastAPI application - workflow engine API
Wires the engine, its stores and the routers together.
"""

from pathlib import Path
from typing import Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from agentflow import __version__
from agentflow.api import executions, tools, workflows
from agentflow.core.config import Config, get_config
from agentflow.core.logging import get_api_logger
from agentflow.execution_store import FileRunStore
from agentflow.services import ToolService, WorkflowService
from agentflow.tools import ToolInvoker
from agentflow.workflow.engine import WorkflowEngine


def create_app(
    config: Optional[Config] = None,
    run_store=None,
    invoker: Optional[ToolInvoker] = None,
) -> FastAPI:
    """
    Build the API application.

    Args:
        config: Engine configuration (global config when omitted)
        run_store: Run store (file store under config.executions_path when omitted)
        invoker: Tool invoker (default HTTP client when omitted)
    """
    config = config or get_config()
    logger = get_api_logger()

    app = FastAPI(
        title="agentflow",
        description="Workflow execution engine",
        version=__version__,
    )

    # CORS for the dashboard
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    tool_service = ToolService(tools_dir=Path(config.tools_path))
    workflow_service = WorkflowService(workflows_dir=Path(config.workflows_path))
    run_store = run_store if run_store is not None else FileRunStore(config.executions_path)
    engine = WorkflowEngine(
        tool_registry=tool_service,
        run_store=run_store,
        workflow_repository=workflow_service,
        invoker=invoker or ToolInvoker(default_timeout=config.tool_timeout),
        config=config,
    )
    workflow_service.engine = engine

    # Runtime objects in app.state for dependency injection
    app.state.config = config
    app.state.tool_service = tool_service
    app.state.workflow_service = workflow_service
    app.state.run_store = run_store
    app.state.workflow_engine = engine

    app.include_router(workflows.router)
    app.include_router(tools.router)
    app.include_router(executions.router)

    @app.on_event("startup")
    async def startup_event():
        logger.info(
            "agentflow API started",
            extra={"tools_path": config.tools_path, "workflows_path": config.workflows_path},
        )

    @app.on_event("shutdown")
    async def shutdown_event():
        await engine.close()

    @app.get("/health")
    async def health():
        """Health check"""
        return {"status": "healthy", "service": "agentflow", "version": __version__}

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn

    config = get_config()
    uvicorn.run(app, host=config.service_host, port=config.service_port)
