# app.py
import logging
import time

from flask import Flask, jsonify

from config import Config
from errors import AttendanceError
from models import db
from models.attendance_model import MarkStore
from models.session_model import SessionStore
from routes.faculty_routes import faculty_bp
from routes.student_routes import student_bp
from services.override_service import OverrideService
from services.role_resolver import ProfileRoleResolver
from services.rotation import RotationScheduler
from services.scan_processor import ScanProcessor
from services.session_manager import RotationPolicy, SessionManager
from utils.clock import utcnow
from utils.logging_config import configure_logging
from utils.token_codec import TokenCodec

logger = logging.getLogger(__name__)


def _build_core(app, token_clock, clock):
    cfg = app.config
    sessions = SessionStore(db.session)
    marks = MarkStore(db.session)
    codec = TokenCodec(cfg["ATTENDANCE_SECRET"], clock=token_clock)
    roles = ProfileRoleResolver(db.session, cfg.get("ADMIN_EMAILS") or ())
    policy = RotationPolicy(
        rotation_seconds=int(cfg["ROTATION_SECONDS"]),
        session_minutes=int(cfg["SESSION_MINUTES"]),
        strict_device_binding=bool(cfg["STRICT_DEVICE_BINDING"]),
    )
    manager = SessionManager(
        codec,
        sessions,
        marks,
        policy,
        min_rotation_seconds=int(cfg["ROTATION_TICK_SECONDS"]),
        auto_close_expired=bool(cfg.get("AUTO_CLOSE_EXPIRED")),
        clock=clock,
    )
    return {
        "codec": codec,
        "roles": roles,
        "manager": manager,
        "scanner": ScanProcessor(codec, sessions, marks, clock=clock),
        "overrides": OverrideService(sessions, marks, roles, clock=clock),
    }


def create_app(config=None, token_clock=time.time, clock=utcnow):
    app = Flask(__name__)
    app.config.from_object(Config)
    if config:
        app.config.update(config)

    configure_logging(app.config["LOG_LEVEL"], app.config.get("LOG_FILE"))

    db.init_app(app)
    with app.app_context():
        db.create_all()

    app.extensions["attendance"] = _build_core(app, token_clock, clock)

    app.register_blueprint(faculty_bp, url_prefix="/api/attendance")
    app.register_blueprint(student_bp, url_prefix="/api/attendance")

    @app.errorhandler(AttendanceError)
    def handle_attendance_error(err):
        return jsonify(err.to_dict()), err.http_status

    @app.teardown_appcontext
    def _rollback_on_error(exc):
        if exc is not None:
            db.session.rollback()

    @app.cli.command("rotate-tokens")
    def rotate_tokens_command():
        """Rotate the QR token of every open session once."""
        rotated = app.extensions["attendance"]["manager"].rotate_tokens()
        print(f"Rotated {rotated} session token(s)")

    if app.config.get("ROTATION_SCHEDULER"):
        scheduler = RotationScheduler(app, int(app.config["ROTATION_TICK_SECONDS"]))
        app.extensions["attendance"]["scheduler"] = scheduler.start()

    logger.info("Attendance service ready")
    return app


# -------------------- Run --------------------
if __name__ == '__main__':
    create_app().run(debug=True)
