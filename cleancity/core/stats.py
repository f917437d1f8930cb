from dataclasses import dataclass
from typing import Optional

from sqlalchemy import func
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from .errors import InternalError
from .logger import RequestLog, db as db_logger
from ..models.report import Report, ReportStatus


@dataclass
class ReportStats:
    total: int = 0
    pending: int = 0
    in_progress: int = 0
    resolved: int = 0


def compute_report_stats(db: Session, log: Optional[RequestLog] = None) -> ReportStats:
    """Per-status report counts from a single GROUP BY"""
    log = (log or RequestLog.detached()).bind(db_logger)
    try:
        rows = db.query(Report.status, func.count(Report.id)).group_by(Report.status).all()
    except SQLAlchemyError:
        log.exception("Failed to aggregate report statistics")
        raise InternalError("Server error fetching statistics")

    counts = {ReportStatus(status): count for status, count in rows}
    stats = ReportStats(
        pending=counts.get(ReportStatus.PENDING, 0),
        in_progress=counts.get(ReportStatus.IN_PROGRESS, 0),
        resolved=counts.get(ReportStatus.RESOLVED, 0),
    )
    stats.total = stats.pending + stats.in_progress + stats.resolved
    log.debug("Report stats: %s", stats)
    return stats
