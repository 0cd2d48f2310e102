# =============================================================================
# POLYEDGE ANALYTICS - LOGGING CONFIGURATION
# =============================================================================
#
# Operational logs go to logs/analytics/.
# Pick decisions go to logs/audit/ as JSON lines (one record per pick).
#
# Library modules only call logging.getLogger(__name__). Handlers are
# attached here, by entry points, never at import time.
#
# =============================================================================

import hashlib
import json
import logging
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, Optional

ROOT_LOGGER_NAME = "analytics"

LOG_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s"
LOG_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


# =============================================================================
# LOG DIRECTORIES (relative to project root)
# =============================================================================

def _get_project_root() -> Path:
    """Get the project root directory."""
    # This file is at shared/logging_config.py
    return Path(__file__).parent.parent


def _get_log_dir(kind: str, base_dir: Optional[Path] = None) -> Path:
    """Get the log directory for a log kind ("analytics" or "audit")."""
    root = base_dir if base_dir is not None else _get_project_root() / "logs"
    return root / kind


# =============================================================================
# LOGGING SETUP
# =============================================================================

def setup_logging(
    level: int = logging.INFO,
    console_output: bool = True,
    file_output: bool = True,
    log_dir: Optional[Path] = None,
) -> logging.Logger:
    """
    Configure the analytics logger tree.

    All pipeline modules log below the "core", "models" and "shared"
    namespaces; those are routed to the same handlers.

    Args:
        level: Logging level
        console_output: Whether to log to console
        file_output: Whether to log to file
        log_dir: Base log directory (default: <project>/logs)

    Returns:
        The configured "analytics" logger
    """
    formatter = logging.Formatter(fmt=LOG_FORMAT, datefmt=LOG_DATE_FORMAT)

    handlers = []
    if console_output:
        console_handler = logging.StreamHandler()
        console_handler.setLevel(level)
        console_handler.setFormatter(formatter)
        handlers.append(console_handler)

    log_file = None
    if file_output:
        directory = _get_log_dir("analytics", log_dir)
        directory.mkdir(parents=True, exist_ok=True)
        timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
        log_file = directory / f"analytics_{timestamp}.log"
        file_handler = logging.FileHandler(log_file, encoding="utf-8")
        file_handler.setLevel(level)
        file_handler.setFormatter(formatter)
        handlers.append(file_handler)

    for name in (ROOT_LOGGER_NAME, "core", "models", "shared"):
        target = logging.getLogger(name)
        target.setLevel(level)
        # Remove existing handlers to avoid duplicates
        target.handlers.clear()
        for handler in handlers:
            target.addHandler(handler)
        target.propagate = False

    logger = logging.getLogger(ROOT_LOGGER_NAME)
    logger.info("Logging initialized for analytics")
    if log_file is not None:
        logger.info(f"Log file: {log_file}")
    return logger


def get_pipeline_logger(component: Optional[str] = None) -> logging.Logger:
    """
    Get a logger below the analytics namespace.

    Args:
        component: Optional child name (e.g. "cli")

    Returns:
        Logger instance
    """
    if component:
        return logging.getLogger(f"{ROOT_LOGGER_NAME}.{component}")
    return logging.getLogger(ROOT_LOGGER_NAME)


# =============================================================================
# AUDIT LOGGING
# =============================================================================

class AuditLogger:
    """
    Logger for audit-grade pick records.

    Audit logs are:
    - Always written to file
    - One JSON object per line
    - Stored separately from operational logs
    - Include a SHA-256 hash of the feature vector for traceability
    """

    def __init__(self, name: str = "picks", log_dir: Optional[Path] = None):
        self.name = name
        self.audit_file = self._setup_audit_logger(log_dir)

    def _setup_audit_logger(self, log_dir: Optional[Path]) -> Path:
        """Set up the audit logger with a dedicated file."""
        audit_dir = _get_log_dir("audit", log_dir)
        audit_dir.mkdir(parents=True, exist_ok=True)

        timestamp = datetime.now().strftime("%Y%m%d")
        audit_file = audit_dir / f"audit_{self.name}_{timestamp}.jsonl"

        self.logger = logging.getLogger(f"audit.{self.name}")
        self.logger.setLevel(logging.INFO)
        self.logger.handlers.clear()
        self.logger.propagate = False

        handler = logging.FileHandler(audit_file, encoding="utf-8")
        handler.setFormatter(logging.Formatter("%(message)s"))
        self.logger.addHandler(handler)
        return audit_file

    @staticmethod
    def _compute_hash(data: Dict[str, Any]) -> str:
        """Hex SHA-256 of a deterministically serialized dict."""
        serialized = json.dumps(data, sort_keys=True, separators=(",", ":"))
        return hashlib.sha256(serialized.encode("utf-8")).hexdigest()

    def log_pick(
        self,
        market_id: str,
        side: str,
        gates: Dict[str, bool],
        reasoning: str,
        features: Optional[Dict[str, float]] = None,
        source: str = "model",
    ) -> None:
        """
        Log a pick decision for audit.

        Args:
            market_id: Market the pick was generated for
            side: YES / NO / WATCH
            gates: Quality gate results
            reasoning: Human-readable reasoning text
            features: Feature vector (hashed, not stored)
            source: "model" or "fallback"
        """
        record = {
            "timestamp": datetime.now().isoformat(),
            "event": "PICK",
            "market_id": market_id,
            "side": side,
            "source": source,
            "gates": gates,
            "reasoning": reasoning,
            "features_hash": self._compute_hash(features) if features else None,
        }
        self.logger.info(json.dumps(record, ensure_ascii=False))

    def close(self) -> None:
        """Close and detach file handlers."""
        for handler in list(self.logger.handlers):
            handler.close()
            self.logger.removeHandler(handler)
