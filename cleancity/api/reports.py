from typing import List, Optional

from fastapi import APIRouter, Depends, Path, status
from sqlalchemy.orm import Session

from ..db import get_db
from ..models.report import Report
from ..schemas.report import (
    ReportCreate,
    ReportStatusUpdate,
    ReportResponse,
    ReportEnvelope,
    ReportListResponse,
    ReportStatsBody,
    ReportStatsResponse,
    MessageResponse,
)
from ..api.auth import Capability, require_capability
from ..core import reports as report_store
from ..core.logger import RequestLog
from ..core.security import TokenClaims
from ..core.stats import compute_report_stats
from ..core.tracing import get_request_log

router = APIRouter()

allow_public = require_capability(Capability.PUBLIC)
require_user = require_capability(Capability.AUTHENTICATED)
require_admin = require_capability(Capability.ADMIN)

# Largest value a SQLite or Postgres BIGINT primary key can hold
MAX_REPORT_ID = 2**63 - 1


def _report_list(reports: List[Report]) -> ReportListResponse:
    return ReportListResponse(
        count=len(reports),
        reports=[ReportResponse.model_validate(r) for r in reports],
    )


@router.get("", response_model=ReportListResponse, dependencies=[Depends(allow_public)])
def list_reports(
    category: Optional[str] = None,
    status: Optional[str] = None,
    search: Optional[str] = None,
    db: Session = Depends(get_db),
    log: RequestLog = Depends(get_request_log),
):
    """List reports, newest first, optionally filtered by category, status and text"""
    reports = report_store.list_reports(db, category=category, status=status, search=search, log=log)
    return _report_list(reports)


@router.get("/my/reports", response_model=ReportListResponse)
def list_my_reports(
    claims: TokenClaims = Depends(require_user),
    db: Session = Depends(get_db),
    log: RequestLog = Depends(get_request_log),
):
    """Reports submitted by the current user"""
    return _report_list(report_store.list_reports_by_owner(db, claims.user_id, log))


@router.get("/admin/stats", response_model=ReportStatsResponse)
def get_report_stats(
    claims: TokenClaims = Depends(require_admin),
    db: Session = Depends(get_db),
    log: RequestLog = Depends(get_request_log),
):
    """Per-status counts for the admin dashboard"""
    stats = compute_report_stats(db, log)
    return ReportStatsResponse(stats=ReportStatsBody.model_validate(stats))


@router.get("/{report_id}", response_model=ReportEnvelope, dependencies=[Depends(allow_public)])
def get_report(
    report_id: int = Path(..., ge=1, le=MAX_REPORT_ID),
    db: Session = Depends(get_db),
    log: RequestLog = Depends(get_request_log),
):
    report = report_store.get_report(db, report_id, log)
    return ReportEnvelope(report=ReportResponse.model_validate(report))


@router.post("", response_model=ReportEnvelope, status_code=status.HTTP_201_CREATED)
def create_report(
    payload: ReportCreate,
    claims: TokenClaims = Depends(require_user),
    db: Session = Depends(get_db),
    log: RequestLog = Depends(get_request_log),
):
    """Submit a new report; it always starts out pending"""
    log.info("Report creation endpoint hit")
    report = report_store.create_report(
        db,
        owner_id=claims.user_id,
        title=payload.title,
        description=payload.description,
        category=payload.category,
        location=payload.location,
        image_url=payload.image_url,
        log=log,
    )
    return ReportEnvelope(
        message="Report created successfully",
        report=ReportResponse.model_validate(report),
    )


@router.put("/{report_id}", response_model=ReportEnvelope)
def update_report(
    payload: ReportStatusUpdate,
    report_id: int = Path(..., ge=1, le=MAX_REPORT_ID),
    claims: TokenClaims = Depends(require_admin),
    db: Session = Depends(get_db),
    log: RequestLog = Depends(get_request_log),
):
    """Change a report's status (admin only)"""
    report = report_store.update_report_status(db, report_id, payload.status, claims.role, log)
    return ReportEnvelope(
        message="Report updated successfully",
        report=ReportResponse.model_validate(report),
    )


@router.delete("/{report_id}", response_model=MessageResponse)
def delete_report(
    report_id: int = Path(..., ge=1, le=MAX_REPORT_ID),
    claims: TokenClaims = Depends(require_user),
    db: Session = Depends(get_db),
    log: RequestLog = Depends(get_request_log),
):
    """Delete a report (its owner or any admin)"""
    report_store.delete_report(db, report_id, claims.user_id, claims.role, log)
    return MessageResponse(message="Report deleted successfully")
