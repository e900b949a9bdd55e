"""
Utils package
"""
from .data_utils import (
    error_response,
    get_request_data,
    parse_bool,
    parse_positive_int,
)

__all__ = [
    'error_response',
    'get_request_data',
    'parse_bool',
    'parse_positive_int',
]
