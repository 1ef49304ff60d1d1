"""Small Flask helpers shared by the controllers (API key, CORS, JSON errors)."""

from __future__ import annotations

import hmac
import logging
from functools import wraps
from typing import Iterable

from flask import Flask, current_app, jsonify, request

from ..core.exceptions import (
    AlreadyPresent,
    AuthenticationError,
    CurrentlyPresent,
    DomainError,
    DuplicateTag,
    NoFilterSpecified,
    NotPresent,
    StorageError,
    UnknownIdentity,
    ValidationError,
)

logger = logging.getLogger(__name__)

API_KEY_HEADER = "X-API-Key"

STATUS_BY_ERROR: dict[type, int] = {
    ValidationError: 400,
    NoFilterSpecified: 400,
    AuthenticationError: 401,
    UnknownIdentity: 404,
    AlreadyPresent: 409,
    NotPresent: 409,
    CurrentlyPresent: 409,
    DuplicateTag: 409,
}


def error_response(message: str, status: int):
    return jsonify({"error": message}), status


def status_for(exc: Exception) -> int:
    for cls in type(exc).__mro__:
        if cls in STATUS_BY_ERROR:
            return STATUS_BY_ERROR[cls]
    return 500


def _key_is_valid(candidate: str, keys: Iterable[str]) -> bool:
    return any(hmac.compare_digest(candidate, key) for key in keys)


def api_key_required(view):
    """Reject the request unless ``X-API-Key`` matches a configured key.

    With no keys configured every endpoint is public.
    """

    @wraps(view)
    def wrapper(*args, **kwargs):
        keys = current_app.config.get("API_KEYS") or ()
        if keys:
            candidate = request.headers.get(API_KEY_HEADER, "")
            if not candidate or not _key_is_valid(candidate, keys):
                return error_response("missing or invalid API key", 401)
        return view(*args, **kwargs)

    return wrapper


def install(app: Flask, *, allowed_origins: str = "*") -> None:
    """Attach CORS headers and JSON error handlers to the app."""

    @app.after_request
    def add_cors_headers(response):
        response.headers["Access-Control-Allow-Origin"] = allowed_origins
        response.headers["Access-Control-Allow-Methods"] = "GET, POST, PUT, DELETE, OPTIONS"
        response.headers["Access-Control-Allow-Headers"] = f"Content-Type, Authorization, {API_KEY_HEADER}"
        response.headers["Access-Control-Max-Age"] = "3600"
        return response

    @app.errorhandler(DomainError)
    def handle_domain_error(exc: DomainError):
        return error_response(str(exc), status_for(exc))

    @app.errorhandler(StorageError)
    def handle_storage_error(exc: StorageError):
        logger.error("Storage failure while handling %s %s: %s", request.method, request.path, exc)
        return error_response("Internal server error", 500)
