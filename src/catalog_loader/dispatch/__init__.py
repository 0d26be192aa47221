"""Event deduplication and execution dispatch."""

from catalog_loader.dispatch.backends import ExecutionBackend, LocalBackend, StepFunctionsBackend
from catalog_loader.dispatch.collector import DispatchReport, EventCollector, RejectedEvent, StartedExecution

__all__ = [
    "DispatchReport",
    "EventCollector",
    "ExecutionBackend",
    "LocalBackend",
    "RejectedEvent",
    "StartedExecution",
    "StepFunctionsBackend",
]
