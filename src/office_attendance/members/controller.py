from __future__ import annotations

from flask import Flask, jsonify, request

from ..common.http import api_key_required
from ..core.exceptions import ValidationError
from ..container import Container


def _draft_from_request(container: Container):
    payload = request.get_json(silent=True)
    if not isinstance(payload, dict):
        raise ValidationError("Invalid JSON")
    return container.member_service.build_draft(
        name=payload.get("name"),
        tag_id=payload.get("uid"),
        external_id=payload.get("discord_id"),
    )


def register(app: Flask, container: Container) -> None:
    members = container.member_service

    @app.route("/members", methods=["GET"], endpoint="members_list")
    @api_key_required
    def members_list():
        return jsonify([m.to_dict() for m in members.list_members()])

    @app.route("/members", methods=["POST"], endpoint="members_create")
    @api_key_required
    def members_create():
        member = members.create_member(_draft_from_request(container))
        return jsonify(member.to_dict()), 201

    @app.route("/members/<int:member_id>", methods=["PUT"], endpoint="members_update")
    @api_key_required
    def members_update(member_id: int):
        member = members.update_member(member_id, _draft_from_request(container))
        return jsonify(member.to_dict())

    @app.route("/members/<int:member_id>", methods=["DELETE"], endpoint="members_delete")
    @api_key_required
    def members_delete(member_id: int):
        members.delete_member(member_id)
        return jsonify({"message": "Member deleted successfully"})

    @app.route("/export-members", methods=["GET"], endpoint="members_export")
    @api_key_required
    def members_export():
        path = container.members_export_path
        count = members.export_members(path)
        return jsonify({"message": f"Exported {count} members to {path}", "count": count})

    @app.route("/import-members", methods=["POST"], endpoint="members_import")
    @api_key_required
    def members_import():
        path = container.members_export_path
        count = members.import_members(path)
        return jsonify({"message": f"Imported {count} members from {path}", "count": count})
