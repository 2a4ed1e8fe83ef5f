from .logger import get_logger, get_request_id, new_request_id, request_scope, setup_logging

__all__ = [
    "get_logger",
    "get_request_id",
    "new_request_id",
    "request_scope",
    "setup_logging",
]
