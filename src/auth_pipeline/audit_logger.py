# SPDX-License-Identifier: LGPL-3.0-only
# Copyright (c) 2026 Mirrowel

import json
import logging
import os
from logging.handlers import RotatingFileHandler
from typing import Any, Optional

from .types import AuthenticatedRequest
from .utils import mask_credential

AUDIT_LOGGER_NAME = "auth_pipeline.audit"
AUDIT_LOG_FILENAME = "transport_audit.log"

# Records still propagate to the library logger; the file handler is opt-in.
audit_logger = logging.getLogger(AUDIT_LOGGER_NAME)

AUDIT_FIELDS = ("destination", "method", "credential", "attempt", "transport")


class JsonFormatter(logging.Formatter):
    def format(self, record):
        log_record = {
            "timestamp": self.formatTime(record, self.datefmt),
            "level": record.levelname,
            "message": record.getMessage(),
        }
        for name in AUDIT_FIELDS:
            if hasattr(record, name):
                log_record[name] = getattr(record, name)
        return json.dumps(log_record)


def setup_audit_logger(log_dir: str = "logs") -> logging.Logger:
    """Attaches a JSON-lines file handler for transport attempts (idempotent)."""
    os.makedirs(log_dir, exist_ok=True)

    audit_logger.setLevel(logging.INFO)
    if any(isinstance(h, RotatingFileHandler) for h in audit_logger.handlers):
        return audit_logger

    # Use a rotating file handler to keep log files from growing too large
    handler = RotatingFileHandler(
        os.path.join(log_dir, AUDIT_LOG_FILENAME),
        maxBytes=5 * 1024 * 1024,  # 5 MB
        backupCount=2,
    )
    handler.setFormatter(JsonFormatter())
    audit_logger.addHandler(handler)
    return audit_logger


def log_attempt(
    authenticated_request: AuthenticatedRequest,
    transport: str,
    attempt: Optional[int] = None,
    **extra: Any,
) -> None:
    """Logs a structured record of one attempted call."""
    fields = {
        "destination": authenticated_request.destination,
        "method": authenticated_request.method.value,
        "credential": mask_credential(authenticated_request.credential),
        "attempt": attempt,
        "transport": transport,
    }
    fields.update(extra)
    audit_logger.info(
        f"Making a network request to {fields['destination']} "
        f"({fields['method']}) with credential {fields['credential']}",
        extra=fields,
    )
