"""Tests for _config module."""

import dataclasses

import pytest

from pidwatch._config import MonitorConfig


def test_config_defaults() -> None:
    cfg = MonitorConfig()
    assert cfg.grace_duration_ms == 5000
    assert cfg.poll_interval_ms == 1000
    assert cfg.tracked_names == ("ollama",)
    assert cfg.grace_all is False
    assert cfg.rocm_smi_path == "rocm-smi"
    assert cfg.command_timeout_s == 5.0


def test_config_custom_values() -> None:
    cfg = MonitorConfig(
        grace_duration_ms=2000,
        poll_interval_ms=250,
        tracked_names=("ollama", "vllm"),
        grace_all=True,
        rocm_smi_path="/opt/rocm/bin/rocm-smi",
        command_timeout_s=1.5,
    )
    assert cfg.grace_duration_ms == 2000
    assert cfg.poll_interval_ms == 250
    assert cfg.tracked_names == ("ollama", "vllm")
    assert cfg.grace_all is True
    assert cfg.rocm_smi_path == "/opt/rocm/bin/rocm-smi"
    assert cfg.command_timeout_s == 1.5


def test_config_is_frozen() -> None:
    cfg = MonitorConfig()
    with pytest.raises(dataclasses.FrozenInstanceError):
        cfg.grace_duration_ms = 1  # type: ignore[misc]
