"""
Audit logging for sales.

Every submitted order, successful or not, leaves one JSON line on the
"audit" logger so the day's sales can be reconciled against the till.
"""
import logging
import json
from datetime import datetime, timezone
from typing import Any, Optional, Dict

# Separate logger for audit events (can be shipped to centralized logging)
audit_logger = logging.getLogger("audit")


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


class AuditLog:
    """Central audit logging for checkout events."""

    @staticmethod
    def log_order_created(order, item_count: int):
        """
        Log a committed order.

        Usage:
            AuditLog.log_order_created(order, item_count=3)
        """
        log_entry = {
            "timestamp": _now(),
            "event_type": "order.created",
            "order_id": order.id,
            "user_id": order.user_id,
            "customer_id": order.customer_id,
            "template_id": order.template_id,
            "total_price": str(order.total_price),
            "item_count": item_count,
        }
        audit_logger.info(json.dumps(log_entry))

    @staticmethod
    def log_order_failed(user_id: int, stage: str, reason: str = ""):
        """
        Log a submission that did not produce a complete order.

        stage is where it stopped: "pricing", "header" or "items".
        """
        log_entry = {
            "timestamp": _now(),
            "event_severity": "WARNING",
            "event_type": "order.failed",
            "user_id": user_id,
            "stage": stage,
        }
        if reason:
            log_entry["reason"] = reason

        audit_logger.warning(json.dumps(log_entry))

    @staticmethod
    def log_action(
        action: str,  # "add", "remove", "update", "clear", "export"
        resource_type: str,  # "basket", "order"
        resource_id: Optional[int],
        user_id: int,
        changes: Optional[Dict[str, Any]] = None,
    ):
        """
        Log a change made by a pharmacist.

        Usage:
            AuditLog.log_action("update", "basket", None, 1, changes={"index": 0, "price": "15000"})
        """
        log_entry = {
            "timestamp": _now(),
            "event_type": f"{resource_type}.{action}",
            "user_id": user_id,
            "resource_id": resource_id,
        }

        if changes:
            log_entry["changes"] = changes

        audit_logger.info(json.dumps(log_entry, default=str))
