"""
API routes for system status
Các API cho trạng thái hệ thống
"""
from flask import Blueprint, current_app, jsonify

from app import globals as app_globals

system_api_bp = Blueprint('system_api', __name__, url_prefix='/api')


@system_api_bp.route('/status')
def api_system_status():
    """API trạng thái hệ thống"""
    config = current_app.config
    database_ok = app_globals.database.ping()
    return jsonify({
        'success': True,
        'data': {
            'database': 'ok' if database_ok else 'unavailable',
            'gallery': app_globals.face_recognition_manager.get_stats(),
            'capture_sessions': app_globals.capture_service.list_sessions(),
            'sse_clients': app_globals.event_broadcaster.get_client_count(),
            'config': {
                'face_recognition_threshold': config['FACE_RECOGNITION_THRESHOLD'],
                'face_detection_model': config['FACE_DETECTION_MODEL'],
                'cooldown_seconds': config['COOLDOWN_SECONDS'],
                'capture_interval_seconds': config['CAPTURE_INTERVAL_SECONDS'],
                'late_after': config['LATE_AFTER'],
            },
        },
    })
