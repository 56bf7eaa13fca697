"""Detail editor: transient copy of one lead while staff edit it."""

from __future__ import annotations

from datetime import datetime
from typing import TYPE_CHECKING

from leadflow.schemas import Lead, MutationResult, Priority, Task, clamp_score

if TYPE_CHECKING:
    from leadflow.store import PipelineStore


class DetailEditor:
    """Task and field edits on a private copy of a lead.

    Nothing here touches the pipeline collection; ``save`` hands the edited
    record to ``PipelineStore.save_detail``.
    """

    def __init__(self, lead: Lead) -> None:
        self.lead = lead.model_copy(deep=True)

    @property
    def lead_id(self) -> str:
        return self.lead.id

    # -- Tasks ----------------------------------------------------------------

    def add_task(self, text: str) -> Task | None:
        text = text.strip()
        if not text:
            return None
        task = Task(text=text)
        self.lead.tasks = [task, *self.lead.tasks]
        return task

    def toggle_task(self, task_id: str) -> None:
        self.lead.tasks = [
            t.model_copy(update={"is_completed": not t.is_completed}) if t.id == task_id else t
            for t in self.lead.tasks
        ]

    def remove_task(self, task_id: str) -> None:
        self.lead.tasks = [t for t in self.lead.tasks if t.id != task_id]

    # -- Overrides ------------------------------------------------------------

    def set_bio(self, bio: str) -> None:
        self.lead.bio = bio

    def set_priority(self, priority: Priority | str) -> None:
        self.lead.priority = Priority(priority)

    def set_score(self, score: int) -> None:
        self.lead.score = clamp_score(score)

    def set_follow_up(self, when: datetime | None) -> None:
        self.lead.next_follow_up = when

    async def save(self, store: PipelineStore) -> MutationResult:
        return await store.save_detail(self.lead)
