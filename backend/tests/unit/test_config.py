# Copyright (c) 2025 adcl.io
# All Rights Reserved.
#
# This software is proprietary and confidential. Unauthorized copying,
# distribution, or use of this software is strictly prohibited.

"""
Unit tests for configuration loading
"""

from agentflow.core.config import Config, load_config
from agentflow.workflow.context import ResolvedSettings
from agentflow.workflow.models import RunSettings


def test_missing_file_gives_defaults(tmp_path):
    assert load_config(str(tmp_path / "absent.yaml")) == Config()


def test_yaml_values(tmp_path, monkeypatch):
    monkeypatch.delenv("LOG_LEVEL", raising=False)
    path = tmp_path / "engine.yaml"
    path.write_text(
        "runs:\n"
        "  timeout: 60\n"
        "  parallelism: 4\n"
        "tools:\n"
        "  timeout: 2.5\n"
        "  retry:\n"
        "    base_delay: 0\n"
        "paths:\n"
        "  executions: /var/runs\n"
        "logging:\n"
        "  level: DEBUG\n"
    )

    config = load_config(str(path))

    assert config.run_timeout == 60.0
    assert config.default_parallelism == 4
    assert config.tool_timeout == 2.5
    assert config.retry_base_delay == 0.0
    assert config.retry_max_delay == Config().retry_max_delay
    assert config.executions_path == "/var/runs"
    assert config.log_level == "DEBUG"
    assert config.max_parallelism == Config().max_parallelism


def test_log_level_env_override(tmp_path, monkeypatch):
    monkeypatch.setenv("LOG_LEVEL", "WARNING")
    path = tmp_path / "engine.yaml"
    path.write_text("logging:\n  level: DEBUG\n")

    assert load_config(str(path)).log_level == "WARNING"


def test_settings_fall_back_to_config():
    config = Config(run_timeout=12.0, default_parallelism=3, max_parallelism=4, tool_retries=2)

    resolved = ResolvedSettings.resolve(RunSettings(), config)
    assert resolved.timeout == 12.0
    assert resolved.parallelism == 3
    assert resolved.retries == 2
    assert resolved.logging is True
    assert resolved.tolerate_branch_failures is False

    resolved = ResolvedSettings.resolve(RunSettings(parallelism=64, retries=0, logging=False), config)
    assert resolved.parallelism == 4
    assert resolved.retries == 0
    assert resolved.logging is False
