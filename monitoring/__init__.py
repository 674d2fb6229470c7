# PATH: monitoring/__init__.py
"""
Monitoring package for ARBWATCH.

Stable import contract:
- MonitorStats, PairStats, VenueHealth
- SpreadLog, build_record, date_partitioned_name
- AlertDeduplicator
- RunSummary, build_summary, print_summary
"""

from monitoring.alerts import AlertDeduplicator
from monitoring.spread_log import (
    SpreadLog,
    WriteResult,
    build_record,
    date_partitioned_name,
)
from monitoring.stats import MonitorStats, PairStats, VenueHealth
from monitoring.summary import (
    SCHEMA_VERSION,
    RunSummary,
    build_summary,
    format_summary_lines,
    print_summary,
)

__all__ = [
    "AlertDeduplicator",
    "MonitorStats",
    "PairStats",
    "RunSummary",
    "SCHEMA_VERSION",
    "SpreadLog",
    "VenueHealth",
    "WriteResult",
    "build_record",
    "build_summary",
    "date_partitioned_name",
    "format_summary_lines",
    "print_summary",
]
