"""Health-check payload."""

from datetime import datetime, timezone


def get_health_status() -> dict:
    """Return the static status plus the server's current UTC time."""
    return {"status": "OK", "timestamp": datetime.now(timezone.utc).isoformat(timespec="seconds")}
