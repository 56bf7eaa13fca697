"""Pipeline store: working set of leads plus optimistic mutation.

Every mutation is applied to ``leads`` before the first ``await`` so the
caller sees it immediately, then confirmed against the gateway. Single-record
failures trigger a full ``load()``. Batch operations track the outcome per id
and reconcile only the ids whose write failed.
"""

from __future__ import annotations

import logging
from typing import Iterable

from leadflow.editor import DetailEditor
from leadflow.gateway import LeadGateway
from leadflow.schemas import BatchOutcome, Lead, LeadStatus, MutationResult

log = logging.getLogger(__name__)


class PipelineStore:
    def __init__(self, gateway: LeadGateway) -> None:
        self.gateway = gateway
        self.leads: list[Lead] = []
        self.loading = False
        self.last_error: str | None = None

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def get(self, lead_id: str) -> Lead | None:
        for lead in self.leads:
            if lead.id == lead_id:
                return lead
        return None

    def open_detail(self, lead_id: str) -> DetailEditor:
        lead = self.get(lead_id)
        if lead is None:
            raise KeyError(lead_id)
        return DetailEditor(lead)

    # ------------------------------------------------------------------
    # Resync
    # ------------------------------------------------------------------

    async def load(self) -> list[Lead]:
        """Replace the local collection with whatever the gateway returns.

        No guard against overlapping calls: the last response to arrive wins.
        """
        self.loading = True
        try:
            result = await self.gateway.fetch_all()
        finally:
            self.loading = False
        if result.error:
            log.error("Loading leads failed: %s", result.error)
        self.last_error = result.error
        self.leads = result.leads
        return self.leads

    # ------------------------------------------------------------------
    # Single-record mutations
    # ------------------------------------------------------------------

    def _replace_local(self, updated: Lead) -> None:
        self.leads = [updated if lead.id == updated.id else lead for lead in self.leads]

    async def _confirm(self, lead_id: str, result: MutationResult) -> MutationResult:
        if not result.success:
            log.warning("Write to lead %s rejected (%s), reloading", lead_id, result.error)
            self.last_error = result.error
            await self.load()
        return result

    async def update_fields(self, lead_id: str, changes: dict) -> MutationResult:
        """Optimistic partial update of the given fields only.

        Values are validated against ``Lead`` first, so the local copy and the
        gateway patch both carry model values (``Task`` objects with ids).
        """
        current = self.get(lead_id)
        if current is not None:
            updated = Lead.model_validate({**current.model_dump(), **changes})
            changes = {name: getattr(updated, name) for name in changes}
            self._replace_local(updated)
        result = await self.gateway.update(lead_id, changes)
        return await self._confirm(lead_id, result)

    async def set_status(self, lead_id: str, status: LeadStatus) -> MutationResult:
        return await self.update_fields(lead_id, {"status": LeadStatus(status)})

    async def save_detail(self, lead: Lead) -> MutationResult:
        """Overwrite the whole record, locally first, then remotely."""
        saved = lead.model_copy(deep=True)
        current = self.get(saved.id)
        if current is not None:
            # created_at is owned by the store and never rewritten
            saved.created_at = current.created_at
        self._replace_local(saved)
        fields = saved.model_dump(exclude={"id", "created_at"})
        fields["tasks"] = list(saved.tasks)
        result = await self.gateway.update(saved.id, fields)
        return await self._confirm(saved.id, result)

    # ------------------------------------------------------------------
    # Batch mutations
    # ------------------------------------------------------------------

    async def batch_delete(self, ids: Iterable[str]) -> BatchOutcome:
        ids = list(dict.fromkeys(ids))
        selected = set(ids)
        self.leads = [lead for lead in self.leads if lead.id not in selected]

        outcome = BatchOutcome()
        for lead_id in ids:
            result = await self.gateway.delete(lead_id)
            _record(outcome, lead_id, result)

        if outcome.failed:
            await self._reconcile(outcome.failed)
        return outcome

    async def batch_set_status(self, ids: Iterable[str], status: LeadStatus) -> BatchOutcome:
        status = LeadStatus(status)
        ids = list(dict.fromkeys(ids))
        selected = set(ids)
        self.leads = [
            lead.model_copy(update={"status": status}) if lead.id in selected else lead
            for lead in self.leads
        ]

        outcome = BatchOutcome()
        for lead_id in ids:
            result = await self.gateway.update(lead_id, {"status": status})
            _record(outcome, lead_id, result)

        if outcome.failed:
            await self._reconcile(outcome.failed)
        return outcome

    async def _reconcile(self, failed: dict[str, str]) -> None:
        """Bring only the failed ids back in line with the backend."""
        log.warning("Batch write failed for %d lead(s): %s", len(failed), ", ".join(failed))
        result = await self.gateway.fetch_all()
        if result.error:
            self.last_error = result.error
            log.error("Could not reconcile failed batch items: %s", result.error)
            return

        remote = {lead.id: lead for lead in result.leads if lead.id in failed}
        local_ids = {lead.id for lead in self.leads}

        reconciled = []
        for lead in self.leads:
            if lead.id in failed:
                if lead.id in remote:
                    reconciled.append(remote[lead.id])
                # gone remotely: drop it
                continue
            reconciled.append(lead)

        # Records deleted locally whose remote delete failed come back
        for lead in result.leads:
            if lead.id in remote and lead.id not in local_ids:
                reconciled.append(lead)

        self.leads = reconciled


def _record(outcome: BatchOutcome, lead_id: str, result: MutationResult) -> None:
    if result.success:
        outcome.succeeded.append(lead_id)
    else:
        outcome.failed[lead_id] = result.error or "unknown error"
