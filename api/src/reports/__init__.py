"""Report ledger module.

Provides:
- Reports filed by one member against another
- Sliding-window auto-ban on distinct reporters
- Moderator review of pending reports
"""

from .models import REPORTS_TABLES_CQL, Report, ReportCategory, ReportStatus
from .service import ReportService


__all__ = [
    "REPORTS_TABLES_CQL",
    "Report",
    "ReportCategory",
    "ReportService",
    "ReportStatus",
]
