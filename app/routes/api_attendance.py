"""
API routes for attendance
Các API endpoint cho ghi nhận và tra cứu điểm danh
"""
from flask import Blueprint, jsonify, request

from app import globals as app_globals
from app.utils import error_response, get_request_data, parse_bool
from core.attendance.models import RecordRequest, parse_date

attendance_api_bp = Blueprint('attendance_api', __name__, url_prefix='/api/attendance')


@attendance_api_bp.route('', methods=['GET'])
def list_attendance():
    """Bản ghi điểm danh, mới nhất trước; lọc theo emp_id và khoảng ngày."""
    filters = {}
    for arg in ('start', 'end'):
        raw = request.args.get(arg)
        if raw:
            parsed = parse_date(raw)
            if parsed is None:
                return error_response(f"Invalid {arg} date {raw!r}, expected YYYY-MM-DD", 400)
            filters[arg] = parsed

    include_photo = parse_bool(request.args.get('include_photo'), default=True)
    records = app_globals.attendance_tracker.get_records(
        emp_id=request.args.get('emp_id') or None,
        start_date=filters.get('start'),
        end_date=filters.get('end'),
        include_photo=include_photo,
    )
    data = [record.to_dict(include_photo=include_photo) for record in records]
    return jsonify({'success': True, 'data': data, 'count': len(data)})


@attendance_api_bp.route('', methods=['POST'])
def record_attendance():
    """Ghi điểm danh Present; lần thứ hai trong ngày trả về already_marked."""
    attendance_request = RecordRequest.from_payload(get_request_data())
    result = app_globals.attendance_tracker.record_request(
        attendance_request,
        station=request.args.get('station'),
    )

    if result.created:
        return jsonify({
            'success': True,
            'status': result.status.value,
            'data': result.record.to_dict(),
        }), 201

    return jsonify({
        'success': True,
        'status': result.status.value,
        'message': 'Already marked',
    })


@attendance_api_bp.route('/timeline/<emp_id>', methods=['GET'])
def employee_timeline(emp_id):
    """Timeline Present/Absent đầy đủ từ ngày bắt đầu đến hôm nay."""
    order = (request.args.get('order') or 'asc').lower()
    if order not in ('asc', 'desc'):
        return error_response("order must be 'asc' or 'desc'", 400)

    timeline = app_globals.report_service.employee_timeline(emp_id, descending=(order == 'desc'))
    return jsonify({
        'success': True,
        'data': timeline['entries'],
        'employee': timeline['employee'],
        'effective_start': timeline['effective_start'],
        'start_source': timeline['start_source'],
        'count': len(timeline['entries']),
    })
