"""
Service Layer - ScanService, reference aggregation and printing, and ServicesContainer.
"""

from flagref.services.container import ServicesContainer, create_services
from flagref.services.reference_aggregator import (
    UploadOptions,
    aggregate,
    build_upload_request,
    group_by_target,
    render_template,
    summarize,
)
from flagref.services.reference_printer import ReferencePrinter, highlight_line
from flagref.services.scan_service import (
    ScanArguments,
    ScanOutcome,
    ScanService,
    ScanUsageError,
    default_uploader,
)

__all__ = [
    # Container and factory
    "ServicesContainer",
    "create_services",
    # Scan orchestration
    "ScanService",
    "ScanArguments",
    "ScanOutcome",
    "ScanUsageError",
    "default_uploader",
    # Aggregation
    "UploadOptions",
    "aggregate",
    "summarize",
    "group_by_target",
    "render_template",
    "build_upload_request",
    # Printing
    "ReferencePrinter",
    "highlight_line",
]
