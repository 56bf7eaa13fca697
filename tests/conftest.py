"""Shared test fixtures."""

from __future__ import annotations

import asyncio
from datetime import datetime, timezone

import pytest

from leadflow.gateway import InMemoryGateway, InMemoryLeadCollection, seed_demo_leads
from leadflow.schemas import MutationResult

NOW = datetime(2026, 3, 2, 9, 0, tzinfo=timezone.utc)


class FlakyGateway(InMemoryGateway):
    """In-memory gateway that can reject writes per id and hold them on a gate.

    ``calls`` records every write in the order it was issued.
    """

    def __init__(self, collection: InMemoryLeadCollection) -> None:
        super().__init__(collection)
        self.fail_ids: set[str] = set()
        self.gate: asyncio.Event | None = None
        self.calls: list[tuple[str, str]] = []
        self.fetches = 0

    async def _hold(self) -> None:
        if self.gate is not None:
            await self.gate.wait()

    async def fetch_all(self):
        self.fetches += 1
        return await super().fetch_all()

    async def update(self, lead_id, patch):
        self.calls.append(("update", lead_id))
        await self._hold()
        if lead_id in self.fail_ids:
            return MutationResult(success=False, error="row is locked")
        return await super().update(lead_id, patch)

    async def delete(self, lead_id):
        self.calls.append(("delete", lead_id))
        await self._hold()
        if lead_id in self.fail_ids:
            return MutationResult(success=False, error="row is locked")
        return await super().delete(lead_id)


@pytest.fixture
def collection():
    """Fresh backend collection seeded with the five demo leads."""
    return InMemoryLeadCollection(seed_demo_leads(now=NOW))


@pytest.fixture
def gateway(collection):
    return InMemoryGateway(collection)


@pytest.fixture
def flaky(collection):
    return FlakyGateway(collection)


@pytest.fixture
def form_data():
    """Factory for intake payloads."""
    def _make(**overrides):
        data = dict(
            full_name="A B",
            email="a@b.com",
            phone="+352000",
            post_applied_for="Team Leader",
            bio="x",
            source="Referral",
        )
        data.update(overrides)
        return data
    return _make
