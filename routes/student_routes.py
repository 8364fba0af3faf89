from flask import Blueprint, current_app, jsonify, request

from utils.identity import caller_from_request
from utils.validation import json_object, optional_str, required_str

student_bp = Blueprint("student", __name__)


def _core():
    return current_app.extensions["attendance"]


@student_bp.route("/scan", methods=["POST"])
def scan_qr():
    caller = caller_from_request()
    data = json_object(request)

    token = required_str(data, "token", message="No token received")
    sid = required_str(data, "sid", "sessionId", message="No session id received")

    result = _core()["scanner"].scan(
        sid,
        token,
        caller,
        device_hash=optional_str(data, "deviceHash"),
        status=optional_str(data, "status"),
        reason=optional_str(data, "reason"),
        note=optional_str(data, "note"),
    )
    return jsonify(dict(result, msg="Attendance marked"))


@student_bp.route("/sessions/<sid>/me", methods=["GET"])
def my_session_mark(sid):
    caller = caller_from_request()
    session, mark = _core()["manager"].student_mark(sid, caller.uid)
    return jsonify({
        "success": True,
        "sessionId": session.id,
        "sessionStatus": session.status,
        "mark": mark.to_dict() if mark else None,
    })


@student_bp.route("/me", methods=["GET"])
def my_attendance():
    caller = caller_from_request()
    records = _core()["manager"].marks_for_student(caller.uid, request.args.get("classId"))
    return jsonify({"success": True, "records": records})
