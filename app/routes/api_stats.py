"""
API routes for statistics
Các API endpoint cho dashboard và thống kê điểm danh
"""
from flask import Blueprint, jsonify, request

from app import globals as app_globals
from app.utils import parse_positive_int

stats_api_bp = Blueprint('stats_api', __name__, url_prefix='/api/stats')

MAX_DAILY_WINDOW = 366


@stats_api_bp.route('/summary')
def api_summary():
    """Tổng quan hôm nay: tổng nhân viên, có mặt, vắng, đi muộn, tỷ lệ tháng."""
    return jsonify({'success': True, 'data': app_globals.report_service.dashboard_summary()})


@stats_api_bp.route('/daily')
def api_daily():
    """Present/Absent theo ngày trong N ngày gần nhất (mặc định 7)."""
    days = parse_positive_int(request.args.get('days'), default=7, maximum=MAX_DAILY_WINDOW)
    return jsonify({'success': True, 'data': app_globals.report_service.daily_breakdown(days)})


@stats_api_bp.route('/employee/<emp_id>')
def api_employee_stats(emp_id):
    return jsonify({'success': True, 'data': app_globals.report_service.employee_stats(emp_id)})
