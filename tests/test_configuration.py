from __future__ import annotations

import logging
from pathlib import Path

import pytest

from slbctl.configmanager import DEFAULT_ENDPOINT, ConfigManager


@pytest.fixture
def clean_env(monkeypatch: pytest.MonkeyPatch) -> pytest.MonkeyPatch:
    for name in (
        "SLBCTL_ENDPOINT",
        "SLBCTL_REGION_ID",
        "SLBCTL_VERIFY_TLS",
        "SLBCTL_LOG_LEVEL",
        "SLBCTL_HTTP_RETRY_COUNT",
        "SLBCTL_POLL_INTERVAL",
        "SLBCTL_POLL_TIMEOUT",
        "SLBCTL_RECREATE_CHANGED",
    ):
        # set then delete so the prior state comes back even when unset
        monkeypatch.setenv(name, "")
        monkeypatch.delenv(name)
    return monkeypatch


def test_defaults(clean_env: pytest.MonkeyPatch) -> None:  # noqa: ARG001
    assert ConfigManager.endpoint() == DEFAULT_ENDPOINT
    assert ConfigManager.region_id() is None
    assert ConfigManager.verify_tls() is True
    assert ConfigManager.log_level() == "INFO"
    assert ConfigManager.http_retry_count() == 3
    assert ConfigManager.poll_interval_s() == 5.0
    assert ConfigManager.poll_timeout_s() == 120.0
    assert ConfigManager.recreate_changed() is False


def test_values_from_environment(clean_env: pytest.MonkeyPatch) -> None:
    clean_env.setenv("SLBCTL_ENDPOINT", " https://slb.cn-test.example ")
    clean_env.setenv("SLBCTL_REGION_ID", "cn-test")
    clean_env.setenv("SLBCTL_VERIFY_TLS", "false")
    clean_env.setenv("SLBCTL_LOG_LEVEL", "debug")
    clean_env.setenv("SLBCTL_HTTP_RETRY_COUNT", "0")
    clean_env.setenv("SLBCTL_POLL_INTERVAL", "0.5")
    clean_env.setenv("SLBCTL_POLL_TIMEOUT", "30")
    clean_env.setenv("SLBCTL_RECREATE_CHANGED", "yes")

    assert ConfigManager.endpoint() == "https://slb.cn-test.example"
    assert ConfigManager.region_id() == "cn-test"
    assert ConfigManager.verify_tls() is False
    assert ConfigManager.log_level() == "DEBUG"
    assert ConfigManager.http_retry_count() == 0
    assert ConfigManager.poll_interval_s() == 0.5
    assert ConfigManager.poll_timeout_s() == 30.0
    assert ConfigManager.recreate_changed() is True


@pytest.mark.parametrize(
    ("name", "value", "accessor"),
    [
        ("SLBCTL_HTTP_RETRY_COUNT", "many", ConfigManager.http_retry_count),
        ("SLBCTL_HTTP_RETRY_COUNT", "-1", ConfigManager.http_retry_count),
        ("SLBCTL_POLL_INTERVAL", "0", ConfigManager.poll_interval_s),
        ("SLBCTL_POLL_TIMEOUT", "soon", ConfigManager.poll_timeout_s),
    ],
)
def test_invalid_numbers_raise(clean_env: pytest.MonkeyPatch, name: str, value: str, accessor) -> None:
    clean_env.setenv(name, value)
    with pytest.raises(ValueError):
        accessor()


def test_load_dotenv_does_not_override_environment(clean_env: pytest.MonkeyPatch, tmp_path: Path) -> None:
    env_file = tmp_path / "test.env"
    env_file.write_text("SLBCTL_REGION_ID=cn-from-file\nSLBCTL_ENDPOINT=https://from-file.example\n", encoding="utf-8")
    clean_env.setenv("SLBCTL_ENDPOINT", "https://from-env.example")

    ConfigManager.load_dotenv(str(env_file))

    assert ConfigManager.region_id() == "cn-from-file"
    assert ConfigManager.endpoint() == "https://from-env.example"


def test_configure_logging_to_directory(tmp_path: Path, restore_root_logger: None) -> None:  # noqa: ARG001
    ConfigManager.configure_logging("WARNING", log_file=tmp_path, file_level="DEBUG")

    ConfigManager.get_logger("slbctl.test").debug("hello file")
    for h in logging.getLogger().handlers:
        h.flush()

    log_file = tmp_path / "slbctl.log"
    assert log_file.exists()
    assert "hello file" in log_file.read_text(encoding="utf-8")
    assert logging.getLogger("httpx").level == logging.WARNING


def test_configure_logging_rejects_unknown_level(restore_root_logger: None) -> None:  # noqa: ARG001
    with pytest.raises(ValueError):
        ConfigManager.configure_logging("LOUD")
