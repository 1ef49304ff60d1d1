from __future__ import annotations

import csv
import io

from flask import Flask, Response, jsonify, request

from ..common.datetime_utils import parse_bound, to_rfc3339
from ..common.http import api_key_required
from ..common.validators import optional_int, optional_positive_int
from ..core.exceptions import ValidationError
from ..container import Container
from .model import Session, SessionFilter

CSV_COLUMNS = ["id", "member_id", "name", "signin_time", "signout_time", "duration_seconds"]


def _filter_from_args(*, tz=None) -> SessionFilter:
    args = request.args
    try:
        since = parse_bound(args["from"], tz=tz) if args.get("from") else None
        until = parse_bound(args["to"], end_of_day=True, tz=tz) if args.get("to") else None
    except ValueError:
        raise ValidationError("'from' and 'to' must be YYYY-MM-DD or RFC 3339 timestamps")

    return SessionFilter(
        since=since,
        until=until,
        member_id=optional_int(args.get("member_id"), "member_id"),
        limit=optional_positive_int(args.get("limit"), "limit"),
    )


def _to_csv(sessions: list[Session]) -> str:
    buf = io.StringIO()
    writer = csv.writer(buf)
    writer.writerow(CSV_COLUMNS)
    for s in sessions:
        writer.writerow(
            [
                s.session_id,
                s.member_id,
                s.member_name or "",
                to_rfc3339(s.start_time),
                to_rfc3339(s.end_time),
                s.duration_seconds,
            ]
        )
    return buf.getvalue()


def register(app: Flask, container: Container) -> None:
    store = container.session_store

    @app.route("/history", methods=["GET"], endpoint="history")
    @api_key_required
    def history():
        flt = _filter_from_args(tz=container.tz)
        sessions = list(store.query(flt))

        if (request.args.get("format") or "").lower() == "csv":
            return Response(
                _to_csv(sessions),
                mimetype="text/csv",
                headers={"Content-Disposition": "attachment; filename=attendance_history.csv"},
            )
        return jsonify([s.to_dict() for s in sessions])

    @app.route("/history", methods=["DELETE"], endpoint="history_delete")
    @api_key_required
    def history_delete():
        flt = _filter_from_args(tz=container.tz)
        deleted = store.delete(flt)
        return jsonify({"deleted": deleted})
