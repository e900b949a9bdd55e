"""
Data utilities
Helper functions cho request parsing và JSON responses
"""
from flask import jsonify, request


def get_request_data():
    """Lấy request data từ JSON hoặc form."""
    if request.is_json:
        data = request.get_json(silent=True)
        return data if isinstance(data, dict) else {}
    return request.form.to_dict()


def parse_bool(value, default=None):
    """
    Phân tích giá trị boolean từ string, int, hoặc bool.
    Returns: True, False, hoặc default nếu không xác định được.
    """
    if value is None:
        return default
    if isinstance(value, bool):
        return value
    if isinstance(value, int):
        return value != 0
    if isinstance(value, str):
        lower = value.strip().lower()
        if lower in ('true', '1', 'yes', 'on'):
            return True
        if lower in ('false', '0', 'no', 'off'):
            return False
    return default


def parse_positive_int(value, default, maximum=None):
    """Số nguyên dương từ query string; giá trị lỗi trả về default"""
    try:
        number = int(value)
    except (TypeError, ValueError):
        return default
    if number < 1:
        return default
    if maximum is not None:
        number = min(number, maximum)
    return number


def error_response(message, status_code=400, **extra):
    """Envelope lỗi chuẩn {'success': False, 'message': ...}"""
    payload = {'success': False, 'message': message}
    payload.update(extra)
    return jsonify(payload), status_code
