from .log_config import get_logger
from .log_decorators import log_operation, op_config, sanitize_for_log

__all__ = ["get_logger", "log_operation", "op_config", "sanitize_for_log"]
