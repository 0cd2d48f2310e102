# =============================================================================
# UNIT TESTS - Logging Configuration
# =============================================================================

import json
import logging
import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent.parent.parent))

from shared.logging_config import (
    ROOT_LOGGER_NAME,
    AuditLogger,
    get_pipeline_logger,
    setup_logging,
)


class TestSetupLogging:

    def teardown_method(self):
        for name in (ROOT_LOGGER_NAME, "core", "models", "shared"):
            target = logging.getLogger(name)
            for handler in list(target.handlers):
                handler.close()
                target.removeHandler(handler)
            target.propagate = True

    def test_writes_log_file(self, tmp_path):
        setup_logging(console_output=False, file_output=True, log_dir=tmp_path)
        logging.getLogger("core.features").info("hello from core")

        files = list((tmp_path / "analytics").glob("analytics_*.log"))
        assert len(files) == 1
        for handler in logging.getLogger("core").handlers:
            handler.flush()
        content = files[0].read_text(encoding="utf-8")
        assert "hello from core" in content
        assert "| INFO     | core.features |" in content

    def test_repeated_setup_does_not_duplicate_handlers(self, tmp_path):
        setup_logging(console_output=True, file_output=False, log_dir=tmp_path)
        setup_logging(console_output=True, file_output=False, log_dir=tmp_path)
        assert len(logging.getLogger("core").handlers) == 1

    def test_pipeline_logger_names(self):
        assert get_pipeline_logger().name == ROOT_LOGGER_NAME
        assert get_pipeline_logger("cli").name == f"{ROOT_LOGGER_NAME}.cli"


class TestAuditLogger:

    def test_one_json_line_per_pick(self, tmp_path):
        audit = AuditLogger(name="test", log_dir=tmp_path)
        audit.log_pick("m-1", "YES", {"all_passed": True}, "because", {"a": 1.0})
        audit.log_pick("m-2", "WATCH", {"all_passed": False}, "no", None, source="fallback")
        audit.close()

        lines = audit.audit_file.read_text(encoding="utf-8").splitlines()
        assert len(lines) == 2
        first, second = (json.loads(line) for line in lines)
        assert first["event"] == "PICK"
        assert first["market_id"] == "m-1"
        assert len(first["features_hash"]) == 64
        assert second["source"] == "fallback"
        assert second["features_hash"] is None

    def test_hash_is_order_independent(self):
        a = AuditLogger._compute_hash({"x": 1.0, "y": 2.0})
        b = AuditLogger._compute_hash({"y": 2.0, "x": 1.0})
        assert a == b
