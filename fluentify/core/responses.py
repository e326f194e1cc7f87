"""Response envelopes shared by every route."""
from datetime import datetime, timezone


def _timestamp() -> str:
    return datetime.now(timezone.utc).isoformat()


def success_response(data, message: str | None = None) -> dict:
    return {
        "success": True,
        "message": message or "Operation successful",
        "data": data,
        "timestamp": _timestamp(),
    }


def created_response(data, message: str | None = None) -> dict:
    return {
        "success": True,
        "message": message or "Resource created successfully",
        "data": data,
        "timestamp": _timestamp(),
    }


def updated_response(data, message: str | None = None) -> dict:
    return {
        "success": True,
        "message": message or "Resource updated successfully",
        "data": data,
        "timestamp": _timestamp(),
    }


def list_response(data: list, message: str | None = None, meta: dict | None = None) -> dict:
    return {
        "success": True,
        "message": message or "Data retrieved successfully",
        "data": data,
        "meta": meta or {"count": len(data)},
        "timestamp": _timestamp(),
    }


def deleted_response(message: str | None = None) -> dict:
    return {
        "success": True,
        "message": message or "Resource deleted successfully",
        "timestamp": _timestamp(),
    }


def auth_response(user: dict, token: str, message: str | None = None) -> dict:
    return {
        "success": True,
        "message": message or "Authentication successful",
        "data": {"user": user, "token": token},
        "timestamp": _timestamp(),
    }


def error_response(message: str, code: int = 10000) -> dict:
    return {
        "success": False,
        "error": {"code": code, "message": message},
        "timestamp": _timestamp(),
    }
