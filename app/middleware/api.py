"""
API middleware
Request logging và ánh xạ exception sang JSON envelope cho /api/*
"""
from flask import request
from werkzeug.exceptions import HTTPException

from app.utils import error_response
from core.errors import (
    DuplicateEmployee,
    EmployeeNotFound,
    InvalidPayload,
    StoreUnavailable,
)
from logging_config import api_logger, log_request_info


def is_api_request():
    """Kiểm tra request hiện tại có thuộc API không."""
    path = request.path or ''
    return path.startswith('/api/')


def register_api_middleware(app):
    """Đăng ký before_request và error handlers cho app."""

    @app.before_request
    def _log_request():
        if is_api_request():
            log_request_info(request)

    @app.errorhandler(InvalidPayload)
    def _invalid_payload(error):
        return error_response(str(error), 400, field=error.field)

    @app.errorhandler(EmployeeNotFound)
    def _employee_not_found(error):
        return error_response(str(error), 404)

    @app.errorhandler(DuplicateEmployee)
    def _duplicate_employee(error):
        return error_response(str(error), 409)

    @app.errorhandler(StoreUnavailable)
    def _store_unavailable(error):
        api_logger.log_error(request.path, str(error), status_code=503)
        return error_response('Database temporarily unavailable', 503)

    @app.errorhandler(HTTPException)
    def _http_error(error):
        if not is_api_request():
            return error
        return error_response(error.description or error.name, error.code or 500)

    @app.errorhandler(Exception)
    def _unexpected_error(error):
        app.logger.error(f"Unhandled error on {request.method} {request.path}: {error}", exc_info=True)
        api_logger.log_error(request.path, str(error), status_code=500)
        return error_response('Internal server error', 500)
