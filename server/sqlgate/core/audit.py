import os
import time
from typing import Optional

from sqlgate.core.logging import get_logger

logger = get_logger("sqlgate.audit")

PREVIEW_CHARS = 200


def preview(sql: str) -> str:
    sql = " ".join(sql.split())
    return sql if len(sql) <= PREVIEW_CHARS else sql[:PREVIEW_CHARS] + "..."


def log_audit_event(event_type: str, client: Optional[str], detail: str):
    """Record one gateway decision.

    Always goes to the ``sqlgate.audit`` logger; also appended to
    SQLGATE_AUDIT_LOG_PATH when that variable is set.
    """
    timestamp = time.strftime("%Y-%m-%d %H:%M:%S", time.localtime())
    log_line = f"{timestamp} | {event_type} | client={client or '-'} | {detail}"
    logger.info(log_line)
    log_path = os.getenv("SQLGATE_AUDIT_LOG_PATH")
    if log_path:
        with open(log_path, "a") as f:
            f.write(log_line + "\n")
