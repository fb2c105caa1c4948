"""
Core Layer - Ignore rules, file collection, flag index, data models and configuration.
"""

from flagref.core.config import (
    ApiConfig,
    FlagrefConfig,
    LoggingConfig,
    ScanConfig,
    load_config,
)
from flagref.core.file_collector import FileCollector
from flagref.core.flag_index import (
    DeletedFlagModel,
    FlagModel,
    ScanTarget,
    build_scan_targets,
)
from flagref.core.ignore_rules import (
    IGNORE_FILE_NAMES,
    Decision,
    IgnoreFileParseError,
    IgnoreRule,
    IgnoreRuleEngine,
    is_ignore_file,
)
from flagref.core.models import (
    FileMatchGroup,
    Line,
    Match,
    ReferenceSummary,
    ScanReport,
    ScanResult,
)

__all__ = [
    # Config
    "FlagrefConfig",
    "ApiConfig",
    "ScanConfig",
    "LoggingConfig",
    "load_config",
    # Ignore rules
    "IGNORE_FILE_NAMES",
    "Decision",
    "IgnoreRule",
    "IgnoreRuleEngine",
    "IgnoreFileParseError",
    "is_ignore_file",
    # File collection
    "FileCollector",
    # Flag index
    "FlagModel",
    "DeletedFlagModel",
    "ScanTarget",
    "build_scan_targets",
    # Models
    "Line",
    "Match",
    "FileMatchGroup",
    "ScanResult",
    "ScanReport",
    "ReferenceSummary",
]
