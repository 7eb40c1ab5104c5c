from datetime import timedelta

import pytest

from conftest import HQ_LAT, HQ_LNG, POINT_500M_NORTH, T0
from services.attendance_service import AttendanceService
from services.history_service import HistoryService
from utils.datetime_helpers import to_utc


def work_day(session, employee_id, day, point=(HQ_LAT, HQ_LNG), hours=8, close=True):
    start = T0 + timedelta(days=day)
    AttendanceService.check_in(session, employee_id, *point, timestamp=start)
    if close:
        AttendanceService.check_out(session, employee_id, *point, timestamp=start + timedelta(hours=hours))


@pytest.fixture
def week(session, make_zone):
    make_zone()
    # Five days back through today; day -1 was worked away from HQ
    for day in (-4, -3, -2):
        work_day(session, "emp-1", day)
    work_day(session, "emp-1", -1, point=POINT_500M_NORTH)
    work_day(session, "emp-1", 0, close=False)


def test_history_is_most_recent_first(session, week):
    records = HistoryService.history(session, "emp-1", 30, now=T0 + timedelta(hours=1))
    check_ins = [to_utc(r.check_in) for r in records]
    assert len(records) == 5
    assert check_ins == sorted(check_ins, reverse=True)
    assert check_ins[0] == T0


def test_history_window_excludes_older_records(session, week):
    records = HistoryService.history(session, "emp-1", 2, now=T0 + timedelta(hours=1))
    assert [to_utc(r.check_in) for r in records] == [T0, T0 - timedelta(days=1)]


def test_history_for_unknown_employee_is_empty(session, week):
    assert HistoryService.history(session, "nobody", 30, now=T0) == []


@pytest.mark.parametrize("days", [0, -5])
def test_history_rejects_non_positive_window(session, days):
    with pytest.raises(ValueError):
        HistoryService.history(session, "emp-1", days, now=T0)


def test_history_for_employees_fans_out_and_dedupes(session, week):
    work_day(session, "emp-2", -1)

    results = HistoryService.history_for_employees(
        session, ["emp-2", "emp-1", "emp-2", "ghost"], 7, now=T0 + timedelta(hours=1)
    )

    assert list(results) == ["emp-2", "emp-1", "ghost"]
    assert len(results["emp-1"]) == 5
    assert len(results["emp-2"]) == 1
    assert results["ghost"] == []


def test_stats_summarise_recent_records(session, week):
    stats = HistoryService.stats(session, "emp-1", days=7, now=T0 + timedelta(hours=1))
    assert stats.as_dict() == {
        "total_days": 5,
        "complete_days": 4,
        "inside_checkins": 4,
        "outside_checkins": 1,
    }


def test_stats_for_employee_without_records(session):
    stats = HistoryService.stats(session, "emp-1", now=T0)
    assert stats.total_days == 0
    assert stats.complete_days == 0
