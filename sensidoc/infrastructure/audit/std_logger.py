import json
import logging
from typing import Any, Dict, Optional

from ...application.clock import utc_now
from ...application.ports.audit_logger import AuditLogger


class StdAuditLogger(AuditLogger):
    """Audit trail as single-line JSON on the ``sensidoc.audit`` logger."""

    def __init__(self, logger_name: str = "sensidoc.audit") -> None:
        self._logger = logging.getLogger(logger_name)

    def log(self, action: str, user_id: str, resource_id: Optional[str] = None, success: bool = True, details: Optional[Dict[str, Any]] = None) -> None:
        record = {
            "at": utc_now().isoformat(),
            "action": action,
            "actor": user_id,
            "resource": resource_id,
            "ok": success,
        }
        if details:
            record["details"] = details
        level = logging.INFO if success else logging.WARNING
        self._logger.log(level, "AUDIT: %s", json.dumps(record, default=str, sort_keys=True))
