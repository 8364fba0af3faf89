from flask import Blueprint, current_app, jsonify, request

from errors import PermissionDenied
from utils.identity import caller_from_request
from utils.validation import json_object, optional_str

faculty_bp = Blueprint("faculty", __name__)


def _core():
    return current_app.extensions["attendance"]


def _require_staff():
    caller = caller_from_request()
    if not _core()["roles"].is_privileged(caller):
        raise PermissionDenied()
    return caller


@faculty_bp.route("/sessions", methods=["POST"])
def create_session():
    caller = _require_staff()
    data = json_object(request)
    result = _core()["manager"].create_session(
        class_id=optional_str(data, "classId"),
        subject_id=optional_str(data, "subjectId"),
        created_by=caller.uid,
    )
    return jsonify(dict(result, success=True)), 201


@faculty_bp.route("/sessions", methods=["GET"])
def list_sessions():
    _require_staff()
    sessions = _core()["manager"].list_open_sessions(request.args.get("classId"))
    return jsonify({"success": True, "sessions": [s.to_dict() for s in sessions]})


@faculty_bp.route("/sessions/<sid>", methods=["GET"])
def get_session(sid):
    _require_staff()
    session = _core()["manager"].get_session(sid)
    return jsonify({"success": True, "session": session.to_dict()})


@faculty_bp.route("/sessions/<sid>/close", methods=["POST"])
def close_session(sid):
    _require_staff()
    _core()["manager"].close_session(sid)
    return jsonify({"success": True})


@faculty_bp.route("/sessions/<sid>/report", methods=["GET"])
def session_report(sid):
    _require_staff()
    report = _core()["manager"].session_report(sid)
    return jsonify(dict(report, success=True))


@faculty_bp.route("/sessions/<sid>/override", methods=["POST"])
def override(sid):
    # OverrideService does its own privilege check
    actor = caller_from_request()
    data = json_object(request)
    mark = _core()["overrides"].override(
        sid,
        optional_str(data, "uid"),
        optional_str(data, "status"),
        actor,
        reason=optional_str(data, "reason"),
        note=optional_str(data, "note"),
    )
    return jsonify({"success": True, "mark": mark.to_dict()})
