"""Read-side helpers for the board, list and metrics views.

All of these are recomputed from the store's current state on every read.
"""

from __future__ import annotations

import math
from typing import Iterable

from leadflow.schemas import Lead, LeadStatus, PipelineMetrics, Priority


def _round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def sort_for_display(leads: Iterable[Lead]) -> list[Lead]:
    """High priority first, newest first within each group."""
    by_newest = sorted(leads, key=lambda lead: lead.created_at, reverse=True)
    return sorted(by_newest, key=lambda lead: lead.priority != Priority.HIGH)


def search_leads(leads: Iterable[Lead], query: str | None) -> list[Lead]:
    if not query or not query.strip():
        return list(leads)
    needle = query.strip().lower()
    return [
        lead for lead in leads
        if needle in lead.full_name.lower()
        or needle in lead.email.lower()
        or needle in lead.post_applied_for.lower()
    ]


def filter_by_status(leads: Iterable[Lead], status: LeadStatus | str | None) -> list[Lead]:
    if status is None:
        return list(leads)
    status = LeadStatus(status)
    return [lead for lead in leads if lead.status == status]


def board_columns(leads: Iterable[Lead]) -> dict[LeadStatus, list[Lead]]:
    ordered = sort_for_display(leads)
    return {status: [lead for lead in ordered if lead.status == status] for status in LeadStatus}


def compute_metrics(leads: Iterable[Lead]) -> PipelineMetrics:
    leads = list(leads)
    total = len(leads)
    by_status = {status: 0 for status in LeadStatus}
    for lead in leads:
        by_status[lead.status] += 1

    if not total:
        return PipelineMetrics(by_status=by_status)

    return PipelineMetrics(
        total=total,
        by_status=by_status,
        conversion_rate=_round_half_up(by_status[LeadStatus.RECRUITER] / total * 100),
        average_score=_round_half_up(sum(lead.score for lead in leads) / total),
        high_priority=sum(1 for lead in leads if lead.priority == Priority.HIGH),
        open_tasks=sum(1 for lead in leads for t in lead.tasks if not t.is_completed),
    )
