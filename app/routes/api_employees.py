"""
API routes for employees
Các API endpoint cho quản lý nhân viên và ảnh tham chiếu
"""
from flask import Blueprint, current_app, jsonify, request

from app import globals as app_globals
from app.utils import error_response, get_request_data, parse_bool
from core.attendance.models import Employee, EmployeePayload
from core.errors import EmployeeNotFound

employee_api_bp = Blueprint('employee_api', __name__, url_prefix='/api/employees')


def _load_employee(emp_id):
    row = app_globals.database.get_employee(emp_id)
    if row is None:
        raise EmployeeNotFound(emp_id)
    return Employee.from_row(row)


def _reload_gallery():
    summary = app_globals.face_recognition_manager.load_known_faces()
    current_app.logger.info(f"Gallery reloaded: {summary['descriptors']} descriptors")


@employee_api_bp.route('', methods=['GET'])
def get_employees():
    """Lấy danh sách nhân viên."""
    active_only = parse_bool(request.args.get('active_only'), default=False)
    include_photo = parse_bool(request.args.get('include_photo'), default=False)
    rows = app_globals.database.get_all_employees(active_only=active_only)
    data = [Employee.from_row(row).to_dict(include_photo=include_photo) for row in rows]
    return jsonify({'success': True, 'data': data, 'count': len(data)})


@employee_api_bp.route('', methods=['POST'])
def create_employee():
    """Tạo nhân viên mới, ảnh (nếu có) được đăng ký làm descriptor."""
    payload = EmployeePayload.from_payload(get_request_data(), require_all=True)

    app_globals.database.add_employee(
        payload.emp_id,
        payload.name,
        department=payload.department,
        join_date=payload.join_date,
        photo=payload.photo,
        is_active=True if payload.active is None else payload.active,
    )

    face_enrolled = False
    if payload.photo:
        face_enrolled = app_globals.face_recognition_manager.enroll_photo(payload.emp_id, payload.photo)
    _reload_gallery()

    employee = _load_employee(payload.emp_id)
    return jsonify({
        'success': True,
        'message': 'Employee created',
        'data': employee.to_dict(),
        'face_enrolled': face_enrolled,
    }), 201


@employee_api_bp.route('/<emp_id>', methods=['GET'])
def get_employee(emp_id):
    include_photo = parse_bool(request.args.get('include_photo'), default=False)
    employee = _load_employee(emp_id)
    return jsonify({'success': True, 'data': employee.to_dict(include_photo=include_photo)})


@employee_api_bp.route('/<emp_id>', methods=['PUT'])
def update_employee(emp_id):
    """Cập nhật thông tin; ảnh mới thay thế toàn bộ descriptor cũ."""
    _load_employee(emp_id)
    payload = EmployeePayload.from_payload(get_request_data(), require_all=False)
    if payload.emp_id and payload.emp_id != emp_id:
        return error_response('emp_id cannot be changed', 400)
    if not payload.provided:
        return error_response('No fields to update', 400)

    app_globals.database.update_employee(
        emp_id,
        name=payload.name,
        department=payload.department,
        join_date=payload.join_date,
        photo=payload.photo,
        is_active=payload.active,
    )

    face_enrolled = None
    if 'photo' in payload.provided:
        face_enrolled = app_globals.face_recognition_manager.enroll_photo(emp_id, payload.photo, replace=True)
    if 'photo' in payload.provided or 'active' in payload.provided:
        _reload_gallery()

    employee = _load_employee(emp_id)
    return jsonify({
        'success': True,
        'message': 'Employee updated',
        'data': employee.to_dict(),
        'face_enrolled': face_enrolled,
    })


@employee_api_bp.route('/<emp_id>', methods=['DELETE'])
def delete_employee(emp_id):
    """Xóa nhân viên và descriptor; lịch sử điểm danh được giữ lại."""
    if not app_globals.database.delete_employee(emp_id):
        raise EmployeeNotFound(emp_id)
    _reload_gallery()
    return jsonify({'success': True, 'message': 'Employee deleted'})


@employee_api_bp.route('/<emp_id>/photos', methods=['POST'])
def add_reference_photo(emp_id):
    """Thêm một ảnh tham chiếu cho nhân viên."""
    _load_employee(emp_id)
    data = get_request_data()
    photo = data.get('photo') or data.get('image')
    if not photo or not isinstance(photo, str):
        return error_response('Missing photo', 400)

    if not app_globals.face_recognition_manager.enroll_photo(emp_id, photo):
        return error_response('No usable face found in photo', 422)
    _reload_gallery()

    employee = _load_employee(emp_id)
    return jsonify({'success': True, 'data': employee.to_dict()}), 201
