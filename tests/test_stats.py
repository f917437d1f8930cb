from cleancity.core.reports import update_report_status
from cleancity.core.stats import ReportStats, compute_report_stats
from cleancity.models.user import UserRole


def test_empty_store_counts_zero(db_session):
    assert compute_report_stats(db_session) == ReportStats(total=0, pending=0, in_progress=0, resolved=0)


def test_counts_per_status_add_up_to_total(db_session, alice, bob, make_report):
    reports = [make_report(alice) for _ in range(3)] + [make_report(bob) for _ in range(3)]
    update_report_status(db_session, reports[0].id, "in-progress", UserRole.ADMIN)
    update_report_status(db_session, reports[1].id, "resolved", UserRole.ADMIN)
    update_report_status(db_session, reports[2].id, "resolved", UserRole.ADMIN)

    stats = compute_report_stats(db_session)

    assert stats == ReportStats(total=6, pending=3, in_progress=1, resolved=2)
    assert stats.total == stats.pending + stats.in_progress + stats.resolved


def test_missing_statuses_default_to_zero(db_session, alice, make_report):
    report = make_report(alice)
    update_report_status(db_session, report.id, "resolved", UserRole.ADMIN)

    stats = compute_report_stats(db_session)

    assert (stats.pending, stats.in_progress, stats.resolved, stats.total) == (0, 0, 1, 1)
