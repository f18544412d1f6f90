"""
Logging decorators for calls that leave the process.
Provides structured, context-rich and secret-free logging for adapter operations.
"""
import logging
import functools
import time
import uuid
import inspect
import traceback
from typing import Dict, Any, Optional, Callable, Set
from datetime import datetime, timezone

from survey_audio.config.settings import get_settings
from .log_config import get_logger


DEFAULT_SENSITIVE_FIELDS: Set[str] = {
    'password', 'secret', 'access_token', 'refresh_token', 'api_key', 'apikey', 'authorization',
    'private_key', 'auth_token', 'xi-api-key', 'audio_data'
}

SLOW_OPERATION_MS = 2000
MAX_LOGGED_STRING = 500


def op_config(
    level: str = "INFO",
    args: bool = True,
    result: bool = True,
    perform: bool = True,
    blacklist: Optional[Set[str]] = None
) -> Dict[str, Any]:
    """
    Create operation config with flexible overrides for logging decorators.

    Args:
        level: Logging level (default INFO)
        args: Whether to log function arguments
        result: Whether to log operation result
        perform: Whether to log timing metrics
        blacklist: Additional sensitive fields to mask

    Returns:
        dict: Configuration for the decorator
    """
    return {
        "level": level,
        "include_args": args,
        "include_result": result,
        "include_performance": perform,
        "sensitive_fields": blacklist or set()
    }


def sanitize_for_log(data: Any, blacklist: Set[str] = DEFAULT_SENSITIVE_FIELDS) -> Any:
    """
    Recursively sanitize data before it reaches a log record.

    Values of keys matching a sensitive field become [REDACTED], binary
    payloads are replaced by their size and long strings are truncated.
    """
    if isinstance(data, dict):
        sanitized = {}
        for key, value in data.items():
            if any(sensitive in str(key).lower() for sensitive in blacklist):
                sanitized[key] = "[REDACTED]"
            else:
                sanitized[key] = sanitize_for_log(value, blacklist)
        return sanitized
    elif isinstance(data, (list, tuple)):
        return [sanitize_for_log(item, blacklist) for item in data]
    elif isinstance(data, (bytes, bytearray)):
        return f"[BINARY_DATA_{len(data)}_BYTES]"
    elif isinstance(data, str) and len(data) > MAX_LOGGED_STRING:
        return data[:MAX_LOGGED_STRING] + "...[truncated]"
    elif hasattr(data, '__dataclass_fields__'):
        return sanitize_for_log(
            {name: getattr(data, name) for name in data.__dataclass_fields__},
            blacklist
        )
    return data


def _build_operation_context(operation: str, method_name: str, component_name: str) -> Dict[str, Any]:
    settings = get_settings()
    return {
        "component": component_name,
        "operation": operation,
        "method": method_name,
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "environment": settings.environment,
        "service": settings.service_name,
        "operation_id": f"op_{uuid.uuid4().hex[:8]}"
    }


def log_operation(
    operation: str,
    level: str = "INFO",
    include_args: bool = False,
    include_result: bool = True,
    include_performance: bool = True,
    sensitive_fields: Optional[Set[str]] = None
) -> Callable:
    """
    Decorator for adapter methods, sync or async.

    Logs start, completion and failure of the wrapped method with operation
    name, component, timing and sanitized arguments/result. Exceptions are
    logged and re-raised unchanged.

    Args:
        operation: Business operation name
        level: Logging level
        include_args: Whether to log function arguments
        include_result: Whether to log operation result
        include_performance: Whether to log timing metrics
        sensitive_fields: Additional sensitive fields to blacklist
    """
    blacklist = DEFAULT_SENSITIVE_FIELDS | (sensitive_fields or set())
    log_level = getattr(logging, level.upper(), logging.INFO)

    def decorator(func: Callable) -> Callable:

        def _start(instance, args, kwargs):
            component_name = type(instance).__name__
            logger = get_logger(component_name)
            context = _build_operation_context(operation, func.__name__, component_name)

            if include_args:
                bound_args = inspect.signature(func).bind(instance, *args, **kwargs)
                bound_args.apply_defaults()
                args_dict = {k: v for k, v in bound_args.arguments.items() if k != 'self'}
                context["arguments"] = sanitize_for_log(args_dict, blacklist)

            if include_performance:
                context["status"] = "started"

            logger.log(log_level, f"Starting {operation}", extra={"extra_fields": context})
            return logger, context, time.perf_counter()

        def _success(logger, context, start_time, result):
            duration_ms = (time.perf_counter() - start_time) * 1000
            success_context = dict(context, status="completed")

            if include_performance:
                success_context["duration_ms"] = round(duration_ms, 2)
                if duration_ms > SLOW_OPERATION_MS:
                    success_context["slow_operation"] = True

            if include_result and result is not None:
                success_context["result"] = sanitize_for_log(result, blacklist)
                success_context["result_type"] = type(result).__name__

            logger.log(log_level, f"Completed {operation}", extra={"extra_fields": success_context})

        def _failure(logger, context, start_time, error):
            duration_ms = (time.perf_counter() - start_time) * 1000
            error_context = dict(context)
            error_context.update({
                "status": "failed",
                "error_type": type(error).__name__,
                "error_message": str(error)[:MAX_LOGGED_STRING],
                "duration_ms": round(duration_ms, 2)
            })
            error_code = getattr(error, 'error_code', None)
            if error_code:
                error_context["error_code"] = error_code
            details = getattr(error, 'details', None)
            if details:
                error_context["error_details"] = sanitize_for_log(details, blacklist)

            if get_settings().is_development:
                error_context["stack_trace"] = traceback.format_exc()

            error_level = logging.CRITICAL if level.upper() == "CRITICAL" else logging.ERROR
            logger.log(error_level, f"Failed {operation}", extra={"extra_fields": error_context})

        if inspect.iscoroutinefunction(func):
            @functools.wraps(func)
            async def async_wrapper(self, *args, **kwargs):
                logger, context, start_time = _start(self, args, kwargs)
                try:
                    result = await func(self, *args, **kwargs)
                except Exception as e:
                    _failure(logger, context, start_time, e)
                    raise
                _success(logger, context, start_time, result)
                return result

            return async_wrapper

        @functools.wraps(func)
        def wrapper(self, *args, **kwargs):
            logger, context, start_time = _start(self, args, kwargs)
            try:
                result = func(self, *args, **kwargs)
            except Exception as e:
                _failure(logger, context, start_time, e)
                raise
            _success(logger, context, start_time, result)
            return result

        return wrapper
    return decorator
