"""Lead persistence: remote record store with an in-memory fallback.

Two interchangeable backends sit behind ``LeadGateway``:

* ``RemoteGateway`` talks to a Supabase / PostgREST table over HTTP.
  Records there use snake_case column names and JSON values.
* ``InMemoryGateway`` keeps leads in an ``InMemoryLeadCollection`` owned by
  whoever builds the gateway. Used whenever the remote store is not
  configured.

Backend rejections never raise: every operation returns a result object
carrying ``error``.
"""

from __future__ import annotations

import abc
import asyncio
import logging
import uuid
from datetime import datetime, timedelta, timezone
from typing import Any

import httpx
from pydantic_core import to_jsonable_python

from leadflow.config import Config
from leadflow.schemas import (
    FetchResult,
    Lead,
    LeadFormData,
    LeadStatus,
    MutationResult,
    Priority,
    Task,
)
from leadflow.scoring import score_submission

log = logging.getLogger(__name__)

WEB_FORM_SOURCE = "Web Form"
MANUAL_SOURCE = "Manual Entry"
MANUAL_MARKER = "(Manual)"


def default_source(form: LeadFormData) -> str:
    """Source the demo store records when the submitter left it empty.

    The remote insert always falls back to ``Web Form``.
    """
    if form.source:
        return form.source
    return MANUAL_SOURCE if MANUAL_MARKER in form.full_name else WEB_FORM_SOURCE


# ── Record mapping (remote boundary) ──────────────────────────────────────

def patch_to_record(patch: dict[str, Any]) -> dict[str, Any]:
    """Convert a partial patch of model values into JSON column values."""
    return to_jsonable_python(patch, by_alias=False)


def lead_to_record(lead: Lead) -> dict[str, Any]:
    return lead.model_dump(mode="json", by_alias=False)


def lead_from_record(record: dict[str, Any]) -> Lead:
    data = dict(record)
    data["tasks"] = data.get("tasks") or []
    return Lead.model_validate(data)


def new_lead_record(form: LeadFormData) -> dict[str, Any]:
    """Column values for a fresh submission (id + created_at left to the store)."""
    scored = score_submission(form)
    record = {
        "full_name": form.full_name,
        "email": form.email,
        "phone": form.phone,
        "post_applied_for": form.post_applied_for,
        "bio": form.bio,
        "source": form.source or WEB_FORM_SOURCE,
        "status": LeadStatus.LEAD.value,
        "score": scored.score,
        "priority": scored.priority.value,
        "tasks": [],
    }
    if form.cv_base64:
        record["cv_base64"] = form.cv_base64
        record["cv_file_name"] = form.cv_file_name or "cv"
    return record


# ── Gateway interface ─────────────────────────────────────────────────────

class LeadGateway(abc.ABC):
    """Create / read / update / delete of lead records."""

    name = "abstract"

    @abc.abstractmethod
    async def fetch_all(self) -> FetchResult: ...

    @abc.abstractmethod
    async def create(self, form: LeadFormData) -> MutationResult: ...

    @abc.abstractmethod
    async def update(self, lead_id: str, patch: dict[str, Any]) -> MutationResult: ...

    @abc.abstractmethod
    async def delete(self, lead_id: str) -> MutationResult: ...

    async def aclose(self) -> None:
        return None


# ── In-memory fallback ────────────────────────────────────────────────────

class InMemoryLeadCollection:
    """Most-recent-first list of leads, shared by reference with the gateway."""

    def __init__(self, leads: list[Lead] | None = None) -> None:
        self.leads: list[Lead] = list(leads or [])

    def __len__(self) -> int:
        return len(self.leads)

    def snapshot(self) -> list[Lead]:
        return [lead.model_copy(deep=True) for lead in self.leads]

    def prepend(self, lead: Lead) -> None:
        self.leads.insert(0, lead)

    def patch(self, lead_id: str, patch: dict[str, Any]) -> None:
        self.leads = [
            Lead.model_validate({**lead.model_dump(), **patch}) if lead.id == lead_id else lead
            for lead in self.leads
        ]

    def remove(self, lead_id: str) -> None:
        self.leads = [lead for lead in self.leads if lead.id != lead_id]


class InMemoryGateway(LeadGateway):
    name = "in-memory"

    def __init__(self, collection: InMemoryLeadCollection, latency: float = 0.0) -> None:
        self.collection = collection
        self.latency = latency

    async def _simulate_latency(self) -> None:
        await asyncio.sleep(self.latency)

    async def fetch_all(self) -> FetchResult:
        await self._simulate_latency()
        return FetchResult(leads=self.collection.snapshot())

    async def create(self, form: LeadFormData) -> MutationResult:
        log.info("Demo mode: storing submission from %s", form.full_name)
        await self._simulate_latency()
        record = new_lead_record(form)
        record["id"] = uuid.uuid4().hex[:9]
        record["source"] = default_source(form)
        self.collection.prepend(Lead.model_validate(record))
        return MutationResult(success=True)

    async def update(self, lead_id: str, patch: dict[str, Any]) -> MutationResult:
        await self._simulate_latency()
        self.collection.patch(lead_id, patch)
        return MutationResult(success=True)

    async def delete(self, lead_id: str) -> MutationResult:
        await self._simulate_latency()
        self.collection.remove(lead_id)
        return MutationResult(success=True)


def seed_demo_leads(now: datetime | None = None) -> list[Lead]:
    """Demonstration candidates used when no remote store is configured."""
    now = now or datetime.now(timezone.utc)
    return [
        Lead(
            id="1",
            full_name="Alexandre Dubois",
            email="a.dubois@example.lu",
            phone="+352 691 123 456",
            post_applied_for="Team Leader",
            bio="4 years of experience in Door-to-Door sales. Proven track record of "
                "managing small teams and hitting daily KPIs.",
            source="Moovijob",
            status=LeadStatus.INTERVIEWING,
            created_at=now - timedelta(days=2),
            priority=Priority.HIGH,
            score=85,
            tasks=[Task(id="t1", text="Check reference letters", created_at=now)],
            next_follow_up=now + timedelta(days=1),
        ),
        Lead(
            id="2",
            full_name="Sarah Wagner",
            email="s.wagner@example.de",
            phone="+49 151 987 6543",
            post_applied_for="Promoter / Brand Ambassador",
            bio="University student looking for summer work. High energy, fluent in "
                "German and French. Loves talking to people.",
            source="LinkedIn",
            status=LeadStatus.LEAD,
            created_at=now - timedelta(hours=4),
            priority=Priority.MEDIUM,
            score=72,
        ),
        Lead(
            id="3",
            full_name="Jean-Pierre Muller",
            email="jp.muller@example.lu",
            phone="+352 661 555 000",
            post_applied_for="Door-to-Door Sales Representative",
            bio="Looking for a career change. Strong communication skills and resilient.",
            source="Facebook",
            status=LeadStatus.LEAD,
            created_at=now - timedelta(minutes=30),
            priority=Priority.LOW,
            score=45,
            tasks=[Task(id="t2", text="Call to gauge motivation", is_completed=True, created_at=now)],
        ),
        Lead(
            id="4",
            full_name="Elena Popov",
            email="elena.p@example.com",
            phone="+352 691 999 888",
            post_applied_for="Sales Manager",
            bio="10 years experience in field marketing and event planning. Managed "
                "campaigns for major telecom brands.",
            source="Website",
            status=LeadStatus.RECRUITER,
            created_at=now - timedelta(days=15),
            priority=Priority.HIGH,
            score=95,
        ),
        Lead(
            id="5",
            full_name="Marc Weber",
            email="marc.w@example.lu",
            phone="+352 621 111 222",
            post_applied_for="Promoter",
            bio="Energetic and ready to learn.",
            source="Walk-in",
            status=LeadStatus.FORMATION,
            created_at=now - timedelta(days=5),
            priority=Priority.LOW,
            score=55,
        ),
    ]


# ── Remote (Supabase / PostgREST) ─────────────────────────────────────────

def _error_message(exc: Exception) -> str:
    if isinstance(exc, httpx.HTTPStatusError):
        try:
            body = exc.response.json()
        except ValueError:
            body = None
        if isinstance(body, dict) and body.get("message"):
            return str(body["message"])
        return f"{exc.response.status_code} {exc.response.reason_phrase}"
    return str(exc) or exc.__class__.__name__


class RemoteGateway(LeadGateway):
    name = "remote"

    def __init__(
        self,
        url: str,
        key: str,
        table: str = "leads",
        timeout: float = 10.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.table = table
        self.client = httpx.AsyncClient(
            base_url=f"{url.rstrip('/')}/rest/v1",
            headers={
                "apikey": key,
                "Authorization": f"Bearer {key}",
                "Content-Type": "application/json",
            },
            timeout=timeout,
            transport=transport,
        )

    @property
    def _path(self) -> str:
        return f"/{self.table}"

    async def _send(self, method: str, **kwargs) -> httpx.Response:
        resp = await self.client.request(method, self._path, **kwargs)
        resp.raise_for_status()
        return resp

    async def fetch_all(self) -> FetchResult:
        try:
            resp = await self._send(
                "GET", params={"select": "*", "order": "created_at.desc"},
            )
            leads = [lead_from_record(r) for r in resp.json() or []]
        except (httpx.HTTPError, ValueError) as e:
            log.error("Fetching leads failed: %s", e)
            return FetchResult(leads=[], error=_error_message(e))
        return FetchResult(leads=leads)

    async def create(self, form: LeadFormData) -> MutationResult:
        try:
            await self._send(
                "POST",
                json=[new_lead_record(form)],
                headers={"Prefer": "return=minimal"},
            )
        except httpx.HTTPError as e:
            log.error("Inserting lead failed: %s", e)
            return MutationResult(success=False, error=_error_message(e))
        return MutationResult(success=True)

    async def update(self, lead_id: str, patch: dict[str, Any]) -> MutationResult:
        record = patch_to_record({k: v for k, v in patch.items() if k != "id"})
        try:
            await self._send(
                "PATCH",
                params={"id": f"eq.{lead_id}"},
                json=record,
                headers={"Prefer": "return=minimal"},
            )
        except httpx.HTTPError as e:
            log.error("Updating lead %s failed: %s", lead_id, e)
            return MutationResult(success=False, error=_error_message(e))
        return MutationResult(success=True)

    async def delete(self, lead_id: str) -> MutationResult:
        try:
            await self._send("DELETE", params={"id": f"eq.{lead_id}"})
        except httpx.HTTPError as e:
            log.error("Deleting lead %s failed: %s", lead_id, e)
            return MutationResult(success=False, error=_error_message(e))
        return MutationResult(success=True)

    async def aclose(self) -> None:
        await self.client.aclose()


# ── Selection ─────────────────────────────────────────────────────────────

def is_remote_configured(config: Config) -> bool:
    return bool(config.supabase_url and config.supabase_key)


def build_gateway(
    config: Config, collection: InMemoryLeadCollection | None = None,
) -> LeadGateway:
    """Pick the backend once; it does not change for the life of the process."""
    if is_remote_configured(config):
        log.info("Using remote lead store at %s", config.supabase_url)
        return RemoteGateway(
            config.supabase_url,
            config.supabase_key,
            table=config.leads_table,
            timeout=config.request_timeout,
        )

    log.warning("SUPABASE_URL / SUPABASE_ANON_KEY not set, running in demo mode")
    if collection is None:
        collection = InMemoryLeadCollection(seed_demo_leads() if config.seed_demo_data else [])
    return InMemoryGateway(collection, latency=config.demo_latency)
