"""Logging setup and per-operator performance instrumentation."""

import functools
import logging
import sys
import time
from typing import Callable, Dict, List, Optional

from fndash.contracts import FnDashError
from fndash.models import OperationStats, configure, get_settings

LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - [%(funcName)s:%(lineno)d] - %(message)s'

logger = logging.getLogger("fndash")
logger.addHandler(logging.NullHandler())

# Performance metrics storage
PERFORMANCE_METRICS: Dict[str, List[float]] = {}


def setup_logging(level: Optional[str] = None) -> logging.Logger:
    """Attach a stream handler to the fndash logger.

    A given ``level`` is stored in the settings, so later ``configure``
    calls keep it.
    """
    settings = configure(log_level=level) if level else get_settings()
    if not any(getattr(h, '_fndash_handler', False) for h in logger.handlers):
        handler = logging.StreamHandler(sys.stderr)
        handler.setFormatter(logging.Formatter(LOG_FORMAT))
        handler._fndash_handler = True
        logger.addHandler(handler)
    logger.setLevel(settings.log_level)
    return logger


def instrumented(operation: str) -> Callable:
    """Log and time every call of an operator."""

    def decorator(func: Callable) -> Callable:
        @functools.wraps(func)
        def wrapper(*args, **kwargs):
            logger.debug(f"Calling {operation} with {len(args)} positional and {len(kwargs)} keyword argument(s)")
            start_time = time.perf_counter()

            try:
                result = func(*args, **kwargs)
            except FnDashError as e:
                execution_time = time.perf_counter() - start_time
                logger.debug(f"{operation} rejected its arguments after {execution_time:.4f}s: {e}")
                raise
            except Exception as e:
                execution_time = time.perf_counter() - start_time
                logger.error(f"Error in {operation} after {execution_time:.4f}s: {e}")
                raise

            execution_time = time.perf_counter() - start_time
            if get_settings().collect_metrics:
                _record_performance(operation, execution_time)
            logger.debug(f"Completed {operation} in {execution_time:.4f}s")
            return result

        return wrapper

    return decorator


def _record_performance(operation: str, execution_time: float):
    if operation not in PERFORMANCE_METRICS:
        PERFORMANCE_METRICS[operation] = []
    PERFORMANCE_METRICS[operation].append(execution_time)


def get_performance_summary() -> Dict[str, OperationStats]:
    """Build aggregated timing stats for every operator called so far."""
    summary = {}
    for operation, times in PERFORMANCE_METRICS.items():
        if times:
            summary[operation] = OperationStats(
                call_count=len(times),
                avg_time=sum(times) / len(times),
                min_time=min(times),
                max_time=max(times),
                total_time=sum(times),
            )
    return summary


def clear_all_metrics():
    """Reset the performance metrics store."""
    PERFORMANCE_METRICS.clear()
