"""
API routes for capture stations
Trạm chấm công: trình duyệt gửi khung hình, hoặc camera phía server tự chạy
"""
from flask import Blueprint, jsonify

from app import globals as app_globals
from app.utils import error_response, get_request_data, parse_bool
from core.vision.camera_manager import CameraError

capture_api_bp = Blueprint('capture_api', __name__, url_prefix='/api/capture')


@capture_api_bp.route('', methods=['GET'])
def list_stations():
    return jsonify({'success': True, 'data': app_globals.capture_service.list_sessions()})


@capture_api_bp.route('/<station_id>/frame', methods=['POST'])
def push_frame(station_id):
    """Một lượt nhận diện trên khung hình base64 ('image' hoặc 'frame')."""
    data = get_request_data()
    image = data.get('image') or data.get('frame')
    keep_photo = parse_bool(data.get('keep_photo'), default=True)
    outcome = app_globals.capture_service.push_frame(station_id, image, keep_photo=keep_photo)
    return jsonify({'success': True, 'data': outcome.to_dict()})


@capture_api_bp.route('/<station_id>/start', methods=['POST'])
def start_station(station_id):
    data = get_request_data()
    camera_index = data.get('camera_index')
    try:
        started = app_globals.capture_service.start(station_id, camera_index=camera_index)
    except (CameraError, ValueError) as exc:
        return error_response(f"Cannot start camera: {exc}", 400)

    if not started:
        return error_response(f"Station {station_id} is already running", 409)
    return jsonify({'success': True, 'message': f"Station {station_id} started"})


@capture_api_bp.route('/<station_id>/stop', methods=['POST'])
def stop_station(station_id):
    if not app_globals.capture_service.stop(station_id):
        return error_response(f"Station {station_id} is not running", 404)
    return jsonify({'success': True, 'message': f"Station {station_id} stopped"})
