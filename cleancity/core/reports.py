"""
Report store.

Reports start out ``pending``; only administrators change the status
afterwards, and they may set any of the three values from any state.
Owners and administrators may delete a report. Deleting never touches the
image the report points at.
"""
import re
from typing import Any, Dict, List, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, joinedload

from .errors import Forbidden, InternalError, NotFound, ValidationError
from .logger import RequestLog, db as db_logger
from .query import build_report_filters, parse_report_query
from ..models.report import Report, ReportCategory, ReportStatus
from ..models.user import UserRole

TITLE_MAX_LENGTH = 200
DESCRIPTION_MAX_LENGTH = 2000

_ABSOLUTE_URL = re.compile(r"^(https?:)?//", re.IGNORECASE)


def _field_error(field: str, message: str) -> Dict[str, str]:
    return {"field": field, "message": message}


def _clean(value: Optional[str]) -> str:
    return value.strip() if isinstance(value, str) else ""


def validate_report_fields(
    title: Optional[str],
    description: Optional[str],
    category: Optional[str],
    location: Optional[str],
    image_url: Optional[str] = None,
) -> Dict[str, Any]:
    """Check every field and raise once with all the problems found"""
    errors = []
    title = _clean(title)
    description = _clean(description)
    location = _clean(location)
    image_url = _clean(image_url) or None

    if not title:
        errors.append(_field_error("title", "Title is required"))
    elif len(title) > TITLE_MAX_LENGTH:
        errors.append(_field_error("title", f"Title cannot exceed {TITLE_MAX_LENGTH} characters"))

    if not description:
        errors.append(_field_error("description", "Description is required"))
    elif len(description) > DESCRIPTION_MAX_LENGTH:
        errors.append(_field_error(
            "description", f"Description cannot exceed {DESCRIPTION_MAX_LENGTH} characters"
        ))

    try:
        category_value = ReportCategory(_clean(category))
    except ValueError:
        category_value = None
        errors.append(_field_error("category", "Category must be waste, water, or road"))

    if not location:
        errors.append(_field_error("location", "Location is required"))

    if image_url and not (_ABSOLUTE_URL.match(image_url) or image_url.startswith("/")):
        errors.append(_field_error(
            "imageUrl", "imageUrl must be an absolute URL or a path starting with '/'"
        ))

    if errors:
        raise ValidationError("Validation failed", errors=errors)

    return {
        "title": title,
        "description": description,
        "category": category_value,
        "location": location,
        "image_url": image_url,
    }


def parse_status(value: Optional[str]) -> ReportStatus:
    try:
        return ReportStatus(_clean(value))
    except ValueError:
        raise ValidationError(
            "Validation failed",
            errors=[_field_error("status", "Status must be pending, in-progress, or resolved")],
        )


def _commit(db: Session, log: RequestLog, error_message: str) -> None:
    try:
        db.commit()
    except SQLAlchemyError:
        db.rollback()
        log.bind(db_logger).exception(error_message)
        raise InternalError(error_message)


def create_report(
    db: Session,
    owner_id: int,
    title: Optional[str],
    description: Optional[str],
    category: Optional[str],
    location: Optional[str],
    image_url: Optional[str] = None,
    log: Optional[RequestLog] = None,
) -> Report:
    log = log or RequestLog.detached()
    fields = validate_report_fields(title, description, category, location, image_url)

    report = Report(owner_id=owner_id, status=ReportStatus.PENDING, **fields)
    db.add(report)
    _commit(db, log, "Server error creating report")
    db.refresh(report)

    log.info("Report created successfully with ID: %s", report.id)
    return report


def get_report(db: Session, report_id: int, log: Optional[RequestLog] = None) -> Report:
    report = (
        db.query(Report)
        .options(joinedload(Report.owner))
        .filter(Report.id == report_id)
        .first()
    )
    if report is None:
        (log or RequestLog.detached()).warning("Report not found with ID: %s", report_id)
        raise NotFound("Report not found")
    return report


def _newest_first(query):
    return query.order_by(Report.created_at.desc(), Report.id.desc())


def list_reports(
    db: Session,
    category: Optional[str] = None,
    status: Optional[str] = None,
    search: Optional[str] = None,
    log: Optional[RequestLog] = None,
) -> List[Report]:
    log = log or RequestLog.detached()
    filters = build_report_filters(parse_report_query(category, status, search))
    try:
        reports = _newest_first(
            db.query(Report).options(joinedload(Report.owner)).filter(*filters)
        ).all()
    except SQLAlchemyError:
        log.bind(db_logger).exception("Failed to fetch reports")
        raise InternalError("Server error fetching reports")

    log.info("Fetched %s reports successfully", len(reports))
    return reports


def list_reports_by_owner(db: Session, owner_id: int, log: Optional[RequestLog] = None) -> List[Report]:
    log = log or RequestLog.detached()
    try:
        reports = _newest_first(
            db.query(Report).options(joinedload(Report.owner)).filter(Report.owner_id == owner_id)
        ).all()
    except SQLAlchemyError:
        log.bind(db_logger).exception("Failed to fetch reports for owner %s", owner_id)
        raise InternalError("Server error fetching reports")
    return reports


def update_report_status(
    db: Session,
    report_id: int,
    new_status: Optional[str],
    requester_role: UserRole,
    log: Optional[RequestLog] = None,
) -> Report:
    """Set a report's status; any value is reachable from any other"""
    log = log or RequestLog.detached()
    if requester_role != UserRole.ADMIN:
        log.warning("Report update attempt by non-admin user")
        raise Forbidden("Only administrators can update report status")

    status = parse_status(new_status)
    report = get_report(db, report_id, log)

    previous = report.status
    report.status = status
    _commit(db, log, "Server error updating report")
    db.refresh(report)

    log.info("Report %s status %s -> %s", report.id, previous.value, status.value)
    return report


def can_delete_report(report: Report, requester_id: int, requester_role: UserRole) -> bool:
    """Owners can delete their own reports, admins can delete any"""
    return requester_role == UserRole.ADMIN or report.owner_id == requester_id


def delete_report(
    db: Session,
    report_id: int,
    requester_id: int,
    requester_role: UserRole,
    log: Optional[RequestLog] = None,
) -> None:
    log = log or RequestLog.detached()
    report = get_report(db, report_id, log)

    if not can_delete_report(report, requester_id, requester_role):
        log.warning("Report deletion attempt by non-owner user: %s", requester_id)
        raise Forbidden("You can only delete your own reports")

    db.delete(report)
    _commit(db, log, "Server error deleting report")
    log.info("Report deleted successfully with ID: %s", report_id)
