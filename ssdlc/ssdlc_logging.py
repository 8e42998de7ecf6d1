"""Logging and observability utilities for the SSDLC tracker.

Structured logging under the ``ssdlc`` logger hierarchy, duration tracking
for service operations, and event hooks that let callers react to project,
task, evidence and report events.
"""

from __future__ import annotations

import json
import time
from collections import deque
import logging as std_logging
from contextlib import contextmanager
from datetime import datetime, timezone
from functools import wraps
from pathlib import Path
from typing import Any, Callable, Deque, Dict, List, Optional, Union

ROOT_LOGGER = "ssdlc"
MAX_METRIC_SAMPLES = 1000


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def setup_logging(log_level: Union[str, int] = std_logging.INFO, log_file: Optional[Path] = None) -> None:
    """Configure console logging and, optionally, a JSON log file."""
    logger = std_logging.getLogger(ROOT_LOGGER)
    logger.setLevel(log_level)
    logger.handlers.clear()

    detailed_formatter = std_logging.Formatter(
        fmt="%(asctime)s - %(name)s - %(levelname)s - %(module)s:%(funcName)s:%(lineno)d - %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )

    console_handler = std_logging.StreamHandler()
    console_handler.setLevel(log_level)
    console_handler.setFormatter(detailed_formatter)
    logger.addHandler(console_handler)

    if log_file:
        file_handler = std_logging.FileHandler(log_file)
        file_handler.setLevel(std_logging.DEBUG)
        file_handler.setFormatter(JsonFormatter())
        logger.addHandler(file_handler)

    logger.info("SSDLC logging initialized")


class JsonFormatter(std_logging.Formatter):
    """Format log records as one JSON object per line."""

    def format(self, record: std_logging.LogRecord) -> str:
        log_entry: Dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "module": record.module,
            "function": record.funcName,
            "line": record.lineno,
            "message": record.getMessage(),
        }

        if record.exc_info:
            log_entry["exception"] = self.formatException(record.exc_info)

        if hasattr(record, "extra_fields"):
            log_entry.update(record.extra_fields)

        return json.dumps(log_entry, default=str)


class PerformanceMonitor:
    """Collect duration metrics for tracker operations.

    Only the most recent ``max_samples`` samples are kept per metric name.
    """

    def __init__(self, max_samples: int = MAX_METRIC_SAMPLES):
        self.max_samples = max_samples
        self.metrics: Dict[str, Deque[Dict[str, Any]]] = {}

    def record_metric(self, name: str, value: Any, tags: Optional[Dict[str, str]] = None) -> None:
        """Record a metric sample and log it."""
        metric = {
            "timestamp": _now_iso(),
            "name": name,
            "value": value,
            "tags": tags or {},
        }
        if name not in self.metrics:
            self.metrics[name] = deque(maxlen=self.max_samples)
        self.metrics[name].append(metric)

        logger = std_logging.getLogger(f"{ROOT_LOGGER}.performance")
        logger.debug(f"Metric recorded: {name}={value}", extra={"extra_fields": metric})

    def get_metrics(self, name: Optional[str] = None) -> Dict[str, List[Dict[str, Any]]]:
        """Get recorded metrics, optionally for a single name."""
        if name:
            return {name: list(self.metrics.get(name, ()))}
        return {key: list(samples) for key, samples in self.metrics.items()}

    def clear(self) -> None:
        self.metrics.clear()


performance_monitor = PerformanceMonitor()


def log_performance(operation_name: str):
    """Decorator recording the duration and outcome of an operation.

    Failures are recorded as metrics and re-raised; logging the error is left
    to the caller.
    """
    def decorator(func):
        @wraps(func)
        def wrapper(*args, **kwargs):
            start_time = time.time()
            logger = std_logging.getLogger(f"{ROOT_LOGGER}.performance")
            try:
                result = func(*args, **kwargs)
            except Exception as e:
                duration = time.time() - start_time
                performance_monitor.record_metric(
                    f"{operation_name}_duration",
                    duration,
                    {"status": "error", "error_type": type(e).__name__},
                )
                logger.debug(
                    f"Operation {operation_name} failed after {duration:.3f}s - {e}",
                    extra={"extra_fields": {
                        "operation": operation_name,
                        "duration": duration,
                        "status": "error",
                        "error_type": type(e).__name__,
                    }},
                )
                raise

            duration = time.time() - start_time
            performance_monitor.record_metric(
                f"{operation_name}_duration",
                duration,
                {"status": "success"},
            )
            logger.debug(
                f"Operation {operation_name} completed in {duration:.3f}s",
                extra={"extra_fields": {
                    "operation": operation_name,
                    "duration": duration,
                    "status": "success",
                }},
            )
            return result

        return wrapper
    return decorator


@contextmanager
def log_operation(operation_name: str, **extra_fields):
    """Log the start, completion or failure of a block of work."""
    logger = std_logging.getLogger(f"{ROOT_LOGGER}.operations")
    start_time = time.time()

    logger.debug(f"Starting operation: {operation_name}", extra={"extra_fields": {
        "operation": operation_name,
        "status": "started",
        **extra_fields,
    }})

    try:
        yield
    except Exception as e:
        duration = time.time() - start_time
        logger.error(f"Failed operation: {operation_name} after {duration:.3f}s - {e}", extra={"extra_fields": {
            "operation": operation_name,
            "status": "failed",
            "duration": duration,
            "error_type": type(e).__name__,
            "error_message": str(e),
            **extra_fields,
        }})
        raise

    duration = time.time() - start_time
    logger.info(f"Completed operation: {operation_name} in {duration:.3f}s", extra={"extra_fields": {
        "operation": operation_name,
        "status": "completed",
        "duration": duration,
        **extra_fields,
    }})


class ObservabilityHooks:
    """Dispatch tracker events to registered callbacks."""

    def __init__(self):
        self.hooks: Dict[str, List[Callable[..., Any]]] = {}
        self.logger = std_logging.getLogger(f"{ROOT_LOGGER}.observability")

    def register_hook(self, event_type: str, callback: Callable[..., Any]) -> None:
        """Register a callback for an event type."""
        self.hooks.setdefault(event_type, []).append(callback)
        self.logger.debug(f"Registered hook for event: {event_type}")

    def unregister_hook(self, event_type: str, callback: Callable[..., Any]) -> None:
        callbacks = self.hooks.get(event_type, [])
        if callback in callbacks:
            callbacks.remove(callback)

    def trigger_hooks(self, event_type: str, **data) -> None:
        """Call every callback registered for the event type.

        A failing hook is logged and does not stop the remaining hooks or
        the operation that raised the event.
        """
        for hook in list(self.hooks.get(event_type, [])):
            try:
                hook(**data)
            except Exception as e:
                self.logger.error(f"Hook failed for event {event_type}: {e}")

    def log_event(self, event_type: str, project_id: Optional[str] = None, **data) -> None:
        """Log a tracker event and trigger its hooks."""
        event_data = {
            "timestamp": _now_iso(),
            "event_type": event_type,
            "project_id": project_id,
            **data,
        }
        self.logger.info(f"Tracker event: {event_type}", extra={"extra_fields": event_data})

        hook_data = {k: v for k, v in event_data.items() if k != "event_type"}
        self.trigger_hooks(event_type, **hook_data)


observability_hooks = ObservabilityHooks()


def log_error_with_context(error: Exception, context: Dict[str, Any], **extra_fields) -> None:
    """Log an error together with the operation context it occurred in."""
    logger = std_logging.getLogger(f"{ROOT_LOGGER}.errors")

    error_data = {
        "timestamp": _now_iso(),
        "error_type": type(error).__name__,
        "error_message": str(error),
        "context": context,
        **extra_fields,
    }

    logger.error(
        f"Error in {context.get('operation', 'unknown operation')}: {error}",
        extra={"extra_fields": error_data},
        exc_info=error,
    )


def log_project_created(project_id: str, name: str, **extra_fields) -> None:
    observability_hooks.log_event("project_created", project_id=project_id, name=name, **extra_fields)


def log_task_update(project_id: str, task_id: str, completed: bool, **extra_fields) -> None:
    observability_hooks.log_event(
        "task_updated", project_id=project_id, task_id=task_id, completed=completed, **extra_fields
    )


def log_phase_status_change(project_id: str, phase: str, completed: bool, overall_status: str) -> None:
    observability_hooks.log_event(
        "phase_status_changed",
        project_id=project_id,
        phase=phase,
        completed=completed,
        overall_status=overall_status,
    )


def log_evidence_added(project_id: str, task_id: str, references: List[str]) -> None:
    observability_hooks.log_event(
        "evidence_added", project_id=project_id, task_id=task_id, references=list(references)
    )


def log_report_generated(project_id: str, overall_score: int, **extra_fields) -> None:
    observability_hooks.log_event(
        "report_generated", project_id=project_id, overall_score=overall_score, **extra_fields
    )
