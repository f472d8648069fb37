"""
Tests for configuration loading and structured logging
"""

import io
import json
import logging

import pytest

from lending_ledger.config import LedgerConfig, get_config, reload_config
from lending_ledger.logging_config import JSONFormatter, setup_logging, log_action


class TestConfig:
    """Environment-driven configuration"""
    
    def test_defaults(self, monkeypatch):
        monkeypatch.delenv("LEDGER_STORAGE_BACKEND", raising=False)
        config = LedgerConfig(_env_file=None)
        assert config.storage_backend == "sqlite"
        assert config.api_port == 8090
        assert config.default_currency == "BRL"
        assert config.paid_tolerance == "0.10"
        assert config.payoff_tolerance == "1.00"
        assert config.auth_enabled
    
    def test_environment_override(self, monkeypatch):
        monkeypatch.setenv("LEDGER_STORAGE_BACKEND", "memory")
        monkeypatch.setenv("LEDGER_API_PORT", "9100")
        monkeypatch.setenv("LEDGER_AUTH_ENABLED", "false")
        
        config = LedgerConfig(_env_file=None)
        
        assert config.storage_backend == "memory"
        assert config.api_port == 9100
        assert not config.auth_enabled
    
    def test_reload(self, monkeypatch):
        monkeypatch.setenv("LEDGER_LOG_LEVEL", "DEBUG")
        try:
            assert reload_config().log_level == "DEBUG"
            assert get_config().log_level == "DEBUG"
        finally:
            monkeypatch.delenv("LEDGER_LOG_LEVEL")
            reload_config()


@pytest.fixture
def captured_logger():
    stream = io.StringIO()
    logger = logging.getLogger("lending_ledger.test")
    handler = logging.StreamHandler(stream)
    handler.setFormatter(JSONFormatter())
    logger.addHandler(handler)
    logger.setLevel(logging.INFO)
    logger.propagate = False
    yield logger, stream
    logger.removeHandler(handler)


class TestStructuredLogging:
    """JSON log lines"""
    
    def test_log_action_fields(self, captured_logger):
        logger, stream = captured_logger
        
        log_action(logger, "info", "Payment applied", user_id="U1", action="apply_payment",
                   resource="LOAN001", tenant_id="T1", extra={"amount": "100.00"})
        
        entry = json.loads(stream.getvalue().strip())
        assert entry["message"] == "Payment applied"
        assert entry["level"] == "INFO"
        assert entry["user_id"] == "U1"
        assert entry["tenant_id"] == "T1"
        assert entry["action"] == "apply_payment"
        assert entry["resource"] == "LOAN001"
        assert entry["extra"] == {"amount": "100.00"}
        assert "correlation_id" not in entry
    
    def test_disabled_level_emits_nothing(self, captured_logger):
        logger, stream = captured_logger
        log_action(logger, "debug", "noise", user_id="U1")
        assert stream.getvalue() == ""
    
    def test_setup_logging_text_format(self, tmp_path):
        log_file = tmp_path / "ledger.log"
        logger = setup_logging("WARNING", logger_name="lending_ledger.setup_test",
                               log_format="text", log_file=str(log_file))
        
        logger.warning("careful")
        logger.info("hidden")
        for handler in logger.handlers:
            handler.flush()
        
        content = log_file.read_text()
        assert "WARNING" in content and "careful" in content
        assert "hidden" not in content
        assert len(logger.handlers) == 1
