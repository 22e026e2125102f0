"""
Log Export

Modules:
    log_export: json / txt / csv rendering of session logs
"""

from infopiece.export.log_export import (
    LOG_FORMATS,
    LogExportOptions,
    default_log_filename,
    format_combined_logs,
    format_log,
    write_log,
)

__all__ = [
    "LOG_FORMATS",
    "LogExportOptions",
    "default_log_filename",
    "format_combined_logs",
    "format_log",
    "write_log",
]
