"""Tests for sorting, search, board grouping and metrics."""

from __future__ import annotations

from datetime import timedelta

from leadflow.gateway import seed_demo_leads
from leadflow.schemas import Lead, LeadStatus, Priority, Task
from leadflow.views import board_columns, compute_metrics, filter_by_status, search_leads, sort_for_display

from conftest import NOW


def _ids(leads):
    return [lead.id for lead in leads]


# ---------------------------------------------------------------------------
# Ordering
# ---------------------------------------------------------------------------

def test_sort_high_priority_first_then_newest():
    assert _ids(sort_for_display(seed_demo_leads(now=NOW))) == ["1", "4", "3", "2", "5"]


def test_sort_does_not_split_medium_and_low():
    leads = [
        Lead(id="old-medium", full_name="A", priority=Priority.MEDIUM, created_at=NOW - timedelta(days=1)),
        Lead(id="new-low", full_name="B", priority=Priority.LOW, created_at=NOW),
    ]
    assert _ids(sort_for_display(leads)) == ["new-low", "old-medium"]


def test_sort_leaves_input_untouched():
    leads = seed_demo_leads(now=NOW)
    sort_for_display(leads)
    assert _ids(leads) == ["1", "2", "3", "4", "5"]


# ---------------------------------------------------------------------------
# Search and filters
# ---------------------------------------------------------------------------

def test_search_matches_name_email_and_role():
    leads = seed_demo_leads(now=NOW)
    assert _ids(search_leads(leads, "wagner")) == ["2"]
    assert _ids(search_leads(leads, "EXAMPLE.DE")) == ["2"]
    assert sorted(_ids(search_leads(leads, "promoter"))) == ["2", "5"]


def test_search_ignores_bio_and_blank_query():
    leads = seed_demo_leads(now=NOW)
    assert search_leads(leads, "telecom") == []
    assert len(search_leads(leads, "   ")) == 5
    assert len(search_leads(leads, None)) == 5


def test_filter_by_status():
    leads = seed_demo_leads(now=NOW)
    assert sorted(_ids(filter_by_status(leads, LeadStatus.LEAD))) == ["2", "3"]
    assert _ids(filter_by_status(leads, "Recruiter")) == ["4"]
    assert len(filter_by_status(leads, None)) == 5


# ---------------------------------------------------------------------------
# Board
# ---------------------------------------------------------------------------

def test_board_has_every_status_in_order():
    columns = board_columns(seed_demo_leads(now=NOW))
    assert list(columns) == list(LeadStatus)
    assert _ids(columns[LeadStatus.LEAD]) == ["3", "2"]
    assert _ids(columns[LeadStatus.INTERVIEWING]) == ["1"]
    assert columns[LeadStatus.REJECTED] == []


def test_board_partitions_every_lead_once():
    leads = seed_demo_leads(now=NOW)
    columns = board_columns(leads)
    assert sorted(lid for members in columns.values() for lid in _ids(members)) == sorted(_ids(leads))


# ---------------------------------------------------------------------------
# Metrics
# ---------------------------------------------------------------------------

def test_metrics_for_demo_data():
    m = compute_metrics(seed_demo_leads(now=NOW))
    assert m.total == 5
    assert m.conversion_rate == 20
    assert m.average_score == 70
    assert m.high_priority == 2
    assert m.open_tasks == 1
    assert m.by_status[LeadStatus.LEAD] == 2
    assert m.by_status[LeadStatus.REJECTED] == 0


def test_metrics_round_half_up():
    leads = [Lead(full_name="A", score=70), Lead(full_name="B", score=71)]
    assert compute_metrics(leads).average_score == 71


def test_metrics_conversion_rounding():
    leads = [Lead(full_name=str(i)) for i in range(3)]
    leads[0].status = LeadStatus.RECRUITER
    assert compute_metrics(leads).conversion_rate == 33


def test_metrics_empty():
    m = compute_metrics([])
    assert m.total == 0
    assert m.conversion_rate == 0
    assert m.average_score == 0
    assert set(m.by_status.values()) == {0}


def test_open_tasks_counts_incomplete_only():
    lead = Lead(
        full_name="A",
        tasks=[Task(text="a"), Task(text="b", is_completed=True), Task(text="c")],
    )
    assert compute_metrics([lead]).open_tasks == 2
