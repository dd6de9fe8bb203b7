from datetime import datetime, timezone
from typing import Any, Dict, List, Optional


def timestamp() -> str:
    return datetime.now(timezone.utc).isoformat()


def build_response(data: Any = None, message: str = "OK") -> Dict[str, Any]:
    """Success envelope shared by every backend endpoint."""
    return {"success": True, "message": message, "data": data, "timestamp": timestamp()}


def build_error(
    status_code: int,
    error_type: str,
    message: str,
    path: str,
    method: str,
    fields: Optional[List[Dict[str, Any]]] = None,
    extra: Optional[Dict[str, Any]] = None,
) -> Dict[str, Any]:
    """Error envelope; `fields` carries per-field validation detail when present."""
    now = timestamp()
    error = {
        "type": error_type,
        "message": message,
        "statusCode": status_code,
        "timestamp": now,
        "path": path,
        "method": method,
    }
    if fields:
        error["fields"] = fields
    if extra:
        error.update(extra)
    return {"success": False, "message": message, "error": error, "timestamp": now}
