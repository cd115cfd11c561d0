# apps/api/health.py
from __future__ import annotations

import logging
from typing import Any, Dict

from db import healthcheck as db_healthcheck
from session import healthcheck as session_store_healthcheck

log = logging.getLogger("health")


def check_database() -> Dict[str, Any]:
    """Check if database connection is working."""
    try:
        db_healthcheck()
        return {"ok": True}
    except Exception as e:
        log.warning("Database health check failed: %s", e)
        return {"ok": False, "error": str(e)}


def check_session_store() -> Dict[str, Any]:
    """Check if the Redis session store answers."""
    try:
        if not session_store_healthcheck():
            raise RuntimeError("Redis ping returned falsy response")
        return {"ok": True}
    except Exception as e:
        log.warning("Session store health check failed: %s", e)
        return {"ok": False, "error": str(e)}


def collect_health_status() -> Dict[str, Any]:
    """
    Overall "ok" is True only if both the database (feed data) and the
    session store (identity) are reachable.
    """
    database = check_database()
    sessions = check_session_store()
    return {
        "ok": bool(database.get("ok") and sessions.get("ok")),
        "checks": {
            "database": database,
            "session_store": sessions,
        },
    }
