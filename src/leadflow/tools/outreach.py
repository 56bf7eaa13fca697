"""Outreach drafts: interview invitations by email or SMS."""

from __future__ import annotations

from urllib.parse import quote

from rich.console import Console
from rich.panel import Panel

from leadflow.schemas import Lead, OutreachDraft

console = Console()


def draft_email(lead: Lead, company: str) -> OutreachDraft:
    """Personalised first-interview invitation."""
    subject = f"Regarding your application for {lead.post_applied_for} at {company}"
    body = (
        f"Hi {lead.full_name},\n\n"
        f"This is the recruitment team from {company}. We were impressed by your "
        f"profile submitted via {lead.source}.\n\n"
        "We would like to invite you for a first interview. Please let us know "
        "when you are available this week.\n\n"
        f"Best regards,\n{company} Recruitment"
    )
    link = f"mailto:{lead.email}?subject={quote(subject)}&body={quote(body)}"
    return OutreachDraft(
        channel="email", lead_id=lead.id, to=lead.email, subject=subject, body=body, link=link,
    )


def draft_sms(lead: Lead, company: str) -> OutreachDraft:
    body = (
        f"Hi {lead.full_name}, this is {company}. We loved your application for "
        f"{lead.post_applied_for}! Would you be free for a quick call today?"
    )
    link = f"sms:{lead.phone.replace(' ', '')}?body={quote(body)}"
    return OutreachDraft(channel="sms", lead_id=lead.id, to=lead.phone, body=body, link=link)


def preview(draft: OutreachDraft) -> None:
    """Print a draft to the console."""
    header = f"[bold]To:[/bold] {draft.to}\n"
    if draft.subject:
        header += f"[bold]Subject:[/bold] {draft.subject}\n"
    console.print(Panel(
        f"{header}\n{draft.body}\n\n[dim]{draft.link}[/dim]",
        title=f"Draft ({draft.channel})",
        border_style="cyan",
    ))
