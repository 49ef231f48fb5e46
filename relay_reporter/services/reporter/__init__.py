"""Poll-report loop"""

from .connectivity import check_connectivity
from .service import ReporterService
from .task import ReportStats, ReportTask

__all__ = ["ReporterService", "ReportTask", "ReportStats", "check_connectivity"]
