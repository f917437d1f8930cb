"""
Translate the public list filters into SQLAlchemy filter clauses.

Empty values and the literal "all" mean "no filter". Unknown category or
status values are not errors; they simply match nothing.
"""
from dataclasses import dataclass
from typing import List, Optional

from sqlalchemy import false, or_
from sqlalchemy.sql.elements import ColumnElement

from ..models.report import Report, ReportCategory, ReportStatus

LIKE_ESCAPE = "\\"
NO_FILTER = "all"


@dataclass(frozen=True)
class ReportQuery:
    category: Optional[str] = None
    status: Optional[str] = None
    search: Optional[str] = None


def _normalize_choice(value: Optional[str]) -> Optional[str]:
    if value is None:
        return None
    value = value.strip().lower()
    if not value or value == NO_FILTER:
        return None
    return value


def parse_report_query(
    category: Optional[str] = None,
    status: Optional[str] = None,
    search: Optional[str] = None,
) -> ReportQuery:
    search = search.strip() if search else None
    return ReportQuery(
        category=_normalize_choice(category),
        status=_normalize_choice(status),
        search=search or None,
    )


def escape_like(text: str) -> str:
    """Escape LIKE wildcards so user text is matched literally"""
    return (
        text.replace(LIKE_ESCAPE, LIKE_ESCAPE * 2)
        .replace("%", LIKE_ESCAPE + "%")
        .replace("_", LIKE_ESCAPE + "_")
    )


def build_report_filters(query: ReportQuery) -> List[ColumnElement]:
    filters: List[ColumnElement] = []

    if query.category is not None:
        try:
            filters.append(Report.category == ReportCategory(query.category))
        except ValueError:
            filters.append(false())

    if query.status is not None:
        try:
            filters.append(Report.status == ReportStatus(query.status))
        except ValueError:
            filters.append(false())

    if query.search:
        pattern = f"%{escape_like(query.search)}%"
        filters.append(or_(
            Report.title.ilike(pattern, escape=LIKE_ESCAPE),
            Report.description.ilike(pattern, escape=LIKE_ESCAPE),
            Report.location.ilike(pattern, escape=LIKE_ESCAPE),
        ))

    return filters
