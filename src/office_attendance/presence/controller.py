from __future__ import annotations

import logging

from flask import Flask, jsonify, request

from ..common.http import api_key_required, error_response
from ..common.validators import require_non_empty
from ..core.exceptions import UnknownIdentity, ValidationError
from ..container import Container

logger = logging.getLogger(__name__)


def _json_body() -> dict:
    payload = request.get_json(silent=True)
    if not isinstance(payload, dict):
        raise ValidationError("Invalid JSON")
    return payload


def register(app: Flask, container: Container) -> None:
    engine = container.engine

    @app.route("/scan", methods=["POST"], endpoint="scan")
    @api_key_required
    def scan():
        """RFID reader posts ``{"uid": ...}``; toggles the member in or out."""
        uid = require_non_empty(_json_body().get("uid"), "uid")

        now = container.clock()
        engine.record_scan(uid, now)
        try:
            result = engine.toggle(uid, now)
        except UnknownIdentity:
            logger.warning("Unknown tag scanned: %s", uid)
            return error_response("Unknown UID", 403)

        logger.info(result.message)
        return jsonify(result.to_dict())

    @app.route("/current", methods=["GET"], endpoint="current")
    @api_key_required
    def current():
        return jsonify([entry.to_dict() for entry in engine.list_present()])

    @app.route("/count", methods=["GET"], endpoint="count")
    @api_key_required
    def count():
        return jsonify({"count": engine.count_present()})

    @app.route("/scan-history", methods=["GET"], endpoint="scan_history")
    @api_key_required
    def scan_history():
        return jsonify([event.to_dict() for event in engine.recent_scans()])

    @app.route("/sign-out-all", methods=["POST"], endpoint="sign_out_all")
    @api_key_required
    def sign_out_all():
        result = engine.force_sign_out_all(container.clock())
        return jsonify({"message": result.message, "count": result.count, "failed": len(result.failures)})

    @app.route("/sign-in-discord", methods=["POST"], endpoint="sign_in_discord")
    @api_key_required
    def sign_in_discord():
        discord_id = require_non_empty(_json_body().get("discord_id"), "discord_id")
        result = engine.sign_in_external(discord_id, container.clock())
        logger.info(result.message)
        return jsonify(result.to_dict())

    @app.route("/sign-out-discord", methods=["POST"], endpoint="sign_out_discord")
    @api_key_required
    def sign_out_discord():
        discord_id = require_non_empty(_json_body().get("discord_id"), "discord_id")
        result = engine.sign_out_external(discord_id, container.clock())
        logger.info(result.message)
        return jsonify(result.to_dict())

    @app.route("/health", methods=["GET"], endpoint="health")
    def health():
        return "OK", 200
