# Copyright (c) 2025 adcl.io
# All Rights Reserved.
#
# This software is proprietary and confidential. Unauthorized copying,
# distribution, or use of this software is strictly prohibited.

"""
agentflow Configuration - Single source of truth.
YAML is king. Env vars ONLY for the log level.

- ALL configuration in plain text (YAML)
- NO hidden state - everything inspectable via `cat`, `grep`
"""

import os
import yaml
from dataclasses import dataclass
from pathlib import Path
from typing import Optional


# =============================================================================
# CONFIGURATION DATACLASS
# =============================================================================

@dataclass(frozen=True)
class Config:
    """
    Immutable engine configuration.
    All values from YAML. No hidden state.
    """

    # -- Runs --
    run_timeout: float = 300.0
    default_parallelism: int = 1
    max_parallelism: int = 32
    max_node_visits: int = 1000
    max_subworkflow_depth: int = 8

    # -- Tools --
    tool_timeout: float = 30.0
    tool_retries: int = 0
    retry_base_delay: float = 0.5
    retry_max_delay: float = 10.0

    # -- Paths --
    executions_path: str = "./data/executions"
    tools_path: str = "./data/tools"
    workflows_path: str = "./data/workflows"

    # -- API --
    service_host: str = "0.0.0.0"
    service_port: int = 8000

    # -- Logging --
    log_level: str = "INFO"
    log_format: str = "json"


# =============================================================================
# LOADER
# =============================================================================

def load_config(path: str = "configs/engine.yaml") -> Config:
    """
    Load configuration from YAML.
    Returns defaults if file doesn't exist.
    """
    if not Path(path).exists():
        return Config()

    with open(path) as f:
        y = yaml.safe_load(f) or {}

    # Helper to safely navigate nested dicts
    def get(d: dict, *keys, default=None):
        for k in keys:
            if not isinstance(d, dict):
                return default
            d = d.get(k, {})
        return d if d != {} else default

    defaults = Config()

    return Config(
        # Runs
        run_timeout=float(get(y, "runs", "timeout") or defaults.run_timeout),
        default_parallelism=int(get(y, "runs", "parallelism") or defaults.default_parallelism),
        max_parallelism=int(get(y, "runs", "max_parallelism") or defaults.max_parallelism),
        max_node_visits=int(get(y, "runs", "max_node_visits") or defaults.max_node_visits),
        max_subworkflow_depth=int(
            get(y, "runs", "max_subworkflow_depth") or defaults.max_subworkflow_depth
        ),

        # Tools
        tool_timeout=float(get(y, "tools", "timeout") or defaults.tool_timeout),
        tool_retries=int(get(y, "tools", "retries") or defaults.tool_retries),
        retry_base_delay=float(get(y, "tools", "retry", "base_delay", default=defaults.retry_base_delay)),
        retry_max_delay=float(get(y, "tools", "retry", "max_delay", default=defaults.retry_max_delay)),

        # Paths
        executions_path=get(y, "paths", "executions") or defaults.executions_path,
        tools_path=get(y, "paths", "tools") or defaults.tools_path,
        workflows_path=get(y, "paths", "workflows") or defaults.workflows_path,

        # API
        service_host=get(y, "api", "host") or defaults.service_host,
        service_port=int(get(y, "api", "port") or defaults.service_port),

        # Logging
        log_level=os.getenv("LOG_LEVEL", get(y, "logging", "level") or defaults.log_level),
        log_format=get(y, "logging", "format") or defaults.log_format,
    )


# =============================================================================
# GLOBAL INSTANCE
# =============================================================================

_config: Optional[Config] = None


def get_config() -> Config:
    """Get or create global config instance."""
    global _config
    if _config is None:
        config_path = os.getenv("AGENTFLOW_CONFIG_PATH", "configs/engine.yaml")
        _config = load_config(config_path)
    return _config


def reload_config() -> Config:
    """Force reload configuration."""
    global _config
    _config = None
    return get_config()
