"""Intake scoring: initial quality score and priority tier for a new lead."""

from __future__ import annotations

from leadflow.schemas import LeadFormData, Priority, ScoreResult, clamp_score

BASE_SCORE = 50

# Channels that historically bring in stronger candidates
PRIVILEGED_SOURCES = frozenset({"LinkedIn", "Moovijob"})
PRIVILEGED_SOURCE_BONUS = 20
REFERRAL_SOURCE = "Referral"
REFERRAL_BONUS = 30

ROLE_BONUSES = {
    "Team Leader": 15,
    "Sales Manager": 10,
}

HIGH_THRESHOLD = 80
MEDIUM_THRESHOLD = 60


def priority_for(score: int) -> Priority:
    if score >= HIGH_THRESHOLD:
        return Priority.HIGH
    if score >= MEDIUM_THRESHOLD:
        return Priority.MEDIUM
    return Priority.LOW


def calculate_score(source: str | None, post_applied_for: str | None) -> ScoreResult:
    """Score a submission from its source channel and the role applied for.

    Each rule is an independent additive check; there is no early exit.
    """
    score = BASE_SCORE

    if source in PRIVILEGED_SOURCES:
        score += PRIVILEGED_SOURCE_BONUS
    if source == REFERRAL_SOURCE:
        score += REFERRAL_BONUS

    if post_applied_for == "Team Leader":
        score += ROLE_BONUSES["Team Leader"]
    if post_applied_for == "Sales Manager":
        score += ROLE_BONUSES["Sales Manager"]

    score = clamp_score(score)
    return ScoreResult(score=score, priority=priority_for(score))


def score_submission(form: LeadFormData) -> ScoreResult:
    return calculate_score(form.source, form.post_applied_for)
