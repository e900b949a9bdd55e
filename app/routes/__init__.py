"""
Routes package
Đăng ký tất cả các blueprints
"""
from .api_attendance import attendance_api_bp
from .api_capture import capture_api_bp
from .api_employees import employee_api_bp
from .api_events import events_api_bp
from .api_stats import stats_api_bp
from .api_system import system_api_bp


def register_blueprints(app):
    """Đăng ký tất cả các blueprints với Flask app."""
    app.register_blueprint(employee_api_bp)
    app.register_blueprint(attendance_api_bp)
    app.register_blueprint(stats_api_bp)
    app.register_blueprint(capture_api_bp)
    app.register_blueprint(events_api_bp)
    app.register_blueprint(system_api_bp)

    app.logger.info("Registered API blueprints")
