"""Interactive terminal dashboard for Leadflow."""

from __future__ import annotations

import asyncio
import shlex
import sys

from rich.console import Console
from rich.table import Table
from rich.theme import Theme

from leadflow import views
from leadflow.auth import AuthFailure, Authenticator, build_authenticator
from leadflow.config import Config, load_config
from leadflow.editor import DetailEditor
from leadflow.gateway import build_gateway
from leadflow.intake import IntakeError, submit_application
from leadflow.logging_config import configure_logging
from leadflow.schemas import Lead, LeadFormData, LeadStatus, Priority, Role
from leadflow.store import PipelineStore
from leadflow.tools.outreach import draft_email, draft_sms, preview

custom_theme = Theme({
    "info": "cyan",
    "warning": "yellow",
    "error": "bold red",
    "success": "bold green",
})

console = Console(theme=custom_theme)

BANNER = r"""
 _                    _  __ _
| |    ___  __ _  __| |/ _| | _____      __
| |   / _ \/ _` |/ _` | |_| |/ _ \ \ /\ / /
| |__|  __/ (_| | (_| |  _| | (_) \ V  V /
|_____\___|\__,_|\__,_|_| |_|\___/ \_/\_/
"""

HELP = """\
[bold]board[/bold]                      pipeline columns
[bold]list[/bold] [query]               sorted list, optional search
[bold]show[/bold] <id>                  lead detail
[bold]metrics[/bold]                    pipeline metrics
[bold]reload[/bold]                     refetch from the store
[bold]move[/bold] <id> <status>         change status (recruiter)
[bold]bulk[/bold] <status> <id>...      change status of several leads (recruiter)
[bold]delete[/bold] <id>...             delete leads (recruiter)
[bold]task add[/bold] <id> <text>       add a follow-up task (recruiter)
[bold]task done[/bold] <id> <task-id>   toggle a task (recruiter)
[bold]task rm[/bold] <id> <task-id>     remove a task (recruiter)
[bold]priority[/bold] <id> <level>      override priority (recruiter)
[bold]score[/bold] <id> <0-100>         override score (recruiter)
[bold]bio[/bold] <id> <text>            edit bio (recruiter)
[bold]email[/bold] <id> / [bold]sms[/bold] <id>       draft an invitation (recruiter)
[bold]apply[/bold]                      enter an application by hand
[bold]quit[/bold]                       leave
"""

READ_ONLY = {"board", "list", "show", "metrics", "reload", "help", "apply"}

PRIORITY_STYLE = {Priority.HIGH: "red", Priority.MEDIUM: "yellow", Priority.LOW: "dim"}


def _ask(prompt: str) -> str:
    return console.input(prompt).strip()


def main() -> None:
    """Entry point for the Leadflow CLI."""
    config = load_config()
    configure_logging(config.log_level, config.log_format)

    console.print(f"[cyan]{BANNER}[/cyan]")
    console.print("[info]Recruitment pipeline dashboard.[/info] Type [bold]help[/bold] for commands.\n")

    authenticator = build_authenticator(config)
    if not authenticator.accounts:
        console.print(
            "[error]No staff passwords set. Add RECRUITER_PASSWORD (and friends) to .env.[/error]"
        )
        sys.exit(1)

    try:
        role = _sign_in(authenticator)
        asyncio.run(_session(config, role))
    except (KeyboardInterrupt, EOFError):
        console.print("\n[info]Goodbye![/info]")


def _sign_in(authenticator: Authenticator, attempts: int = 3) -> Role:
    for _ in range(attempts):
        username = _ask("[bold]Username:[/bold] ")
        password = console.input("[bold]Password:[/bold] ", password=True)
        try:
            role = authenticator.authenticate(username, password)
        except AuthFailure as e:
            console.print(f"[error]{e}[/error]")
            continue
        console.print(f"[success]Signed in as {role.value}.[/success]")
        return role
    console.print("[error]Too many failed attempts.[/error]")
    sys.exit(1)


async def _session(config: Config, role: Role) -> None:
    gateway = build_gateway(config)
    store = PipelineStore(gateway)
    try:
        with console.status("Loading leads..."):
            await store.load()
        if store.last_error:
            console.print(f"[warning]Could not load leads: {store.last_error}[/warning]")
        await _loop(store, config, role)
    finally:
        await gateway.aclose()


async def _loop(store: PipelineStore, config: Config, role: Role) -> None:
    """Main REPL loop."""
    while True:
        try:
            user_input = await asyncio.to_thread(_ask, "\n[bold green]leadflow>[/bold green] ")
        except EOFError:
            break

        if not user_input:
            continue
        if user_input.lower() in ("quit", "exit", "q"):
            console.print("[info]Goodbye![/info]")
            break

        try:
            args = shlex.split(user_input)
        except ValueError as e:
            console.print(f"[error]{e}[/error]")
            continue
        command, args = args[0].lower(), args[1:]

        if role != Role.RECRUITER and command not in READ_ONLY:
            console.print(f"[warning]{role.value.title()} accounts are read-only.[/warning]")
            continue

        try:
            await dispatch(store, config, command, args)
        except (KeyError, ValueError, IndexError) as e:
            console.print(f"[error]Error: {e}[/error]")


async def dispatch(store: PipelineStore, config: Config, command: str, args: list[str]) -> None:
    if command == "help":
        console.print(HELP)
    elif command == "board":
        render_board(store.leads)
    elif command == "list":
        render_list(views.sort_for_display(views.search_leads(store.leads, " ".join(args))))
    elif command == "show":
        render_detail(_require(store, args[0]))
    elif command == "metrics":
        render_metrics(store.leads)
    elif command == "reload":
        await store.load()
        console.print(f"[success]{len(store.leads)} lead(s) loaded.[/success]")
    elif command == "move":
        _require(store, args[0])
        result = await store.set_status(args[0], _status(args[1]))
        _report(result.success, result.error, f"Moved {args[0]} to {_status(args[1]).value}")
    elif command == "bulk":
        outcome = await store.batch_set_status(args[1:], _status(args[0]))
        _report_batch(outcome.succeeded, outcome.failed)
    elif command == "delete":
        outcome = await store.batch_delete(args)
        _report_batch(outcome.succeeded, outcome.failed)
    elif command == "task":
        await _task_command(store, args)
    elif command in ("priority", "score", "bio"):
        editor = store.open_detail(args[0])
        if command == "priority":
            editor.set_priority(args[1].title())
        elif command == "score":
            editor.set_score(int(args[1]))
        else:
            editor.set_bio(" ".join(args[1:]))
        result = await editor.save(store)
        _report(result.success, result.error, f"Saved {args[0]}")
    elif command in ("email", "sms"):
        lead = _require(store, args[0])
        draft = draft_email if command == "email" else draft_sms
        preview(draft(lead, config.company_name))
    elif command == "apply":
        await _apply(store, config)
    else:
        console.print(f"[warning]Unknown command '{command}'. Type help.[/warning]")


def _require(store: PipelineStore, lead_id: str) -> Lead:
    lead = store.get(lead_id)
    if lead is None:
        raise KeyError(f"no lead with id {lead_id}")
    return lead


def _status(value: str) -> LeadStatus:
    for status in LeadStatus:
        if status.value.lower() == value.lower():
            return status
    raise ValueError(f"unknown status '{value}' (one of {', '.join(s.value for s in LeadStatus)})")


def _report(ok: bool, error: str | None, message: str) -> None:
    if ok:
        console.print(f"[success]{message}[/success]")
    else:
        console.print(f"[error]Backend rejected the change ({error}); reloaded.[/error]")


def _report_batch(succeeded: list[str], failed: dict[str, str]) -> None:
    if succeeded:
        console.print(f"[success]{len(succeeded)} lead(s) updated.[/success]")
    for lead_id, error in failed.items():
        console.print(f"[error]{lead_id}: {error}[/error]")


def _task_id(editor: DetailEditor, prefix: str) -> str:
    matches = [t.id for t in editor.lead.tasks if t.id.startswith(prefix)]
    if len(matches) != 1:
        raise KeyError(f"no single task matching '{prefix}'")
    return matches[0]


async def _task_command(store: PipelineStore, args: list[str]) -> None:
    action, lead_id = args[0], args[1]
    editor = store.open_detail(lead_id)
    if action == "add":
        if editor.add_task(" ".join(args[2:])) is None:
            raise ValueError("task text is empty")
    elif action == "done":
        editor.toggle_task(_task_id(editor, args[2]))
    elif action == "rm":
        editor.remove_task(_task_id(editor, args[2]))
    else:
        raise ValueError(f"unknown task action '{action}'")
    result = await editor.save(store)
    _report(result.success, result.error, f"Tasks saved for {lead_id}")


async def _apply(store: PipelineStore, config: Config) -> None:
    fields = {
        "full_name": "Full name",
        "email": "Email",
        "phone": "Phone",
        "post_applied_for": "Position",
        "bio": "About the candidate",
        "source": "Source (blank for manual entry)",
    }
    answers = {}
    for key, label in fields.items():
        answers[key] = await asyncio.to_thread(_ask, f"[bold]{label}:[/bold] ")
    if not answers["source"] and "(Manual)" not in answers["full_name"]:
        answers["full_name"] = f"{answers['full_name']} (Manual)"

    form = LeadFormData(**answers)
    try:
        result = await submit_application(store.gateway, form, config.max_cv_bytes)
    except IntakeError as e:
        console.print(f"[error]{e}[/error]")
        return
    if result.success:
        await store.load()
    _report(result.success, result.error, "Application stored")


# ---------------------------------------------------------------------------
# Rendering
# ---------------------------------------------------------------------------

def _lead_row(lead: Lead) -> list[str]:
    style = PRIORITY_STYLE[lead.priority]
    return [
        lead.id,
        lead.full_name,
        lead.post_applied_for,
        lead.status.value,
        f"[{style}]{lead.priority.value}[/{style}]",
        str(lead.score),
        lead.source,
        lead.created_at.strftime("%Y-%m-%d"),
    ]


def render_list(leads: list[Lead]) -> None:
    table = Table(title=f"Leads ({len(leads)})")
    for col in ("ID", "Name", "Position", "Status", "Priority", "Score", "Source", "Applied"):
        table.add_column(col)
    for lead in leads:
        table.add_row(*_lead_row(lead))
    console.print(table)


def render_board(leads: list[Lead]) -> None:
    columns = views.board_columns(leads)
    table = Table(title="Pipeline")
    for status, members in columns.items():
        table.add_column(f"{status.value} ({len(members)})")
    depth = max((len(m) for m in columns.values()), default=0)
    for i in range(depth):
        table.add_row(*[
            f"{m[i].full_name} [dim]{m[i].id}[/dim]" if i < len(m) else ""
            for m in columns.values()
        ])
    console.print(table)


def render_detail(lead: Lead) -> None:
    console.print(f"[bold]{lead.full_name}[/bold] ({lead.id}) · {lead.post_applied_for}")
    console.print(f"{lead.email} · {lead.phone} · via {lead.source}")
    console.print(f"Status: {lead.status.value} · Priority: {lead.priority.value} · Score: {lead.score}")
    if lead.next_follow_up:
        console.print(f"Follow up: {lead.next_follow_up:%Y-%m-%d %H:%M}")
    if lead.cv_file_name:
        console.print(f"CV: {lead.cv_file_name}")
    console.print(f"\n{lead.bio}\n")
    for task in lead.tasks:
        mark = "[green]✓[/green]" if task.is_completed else "·"
        console.print(f"  {mark} {task.text} [dim]{task.id[:8]}[/dim]")


def render_metrics(leads: list[Lead]) -> None:
    m = views.compute_metrics(leads)
    table = Table(title="Pipeline metrics", show_header=False)
    table.add_row("Total applicants", str(m.total))
    table.add_row("Conversion rate", f"{m.conversion_rate}%")
    table.add_row("Avg. talent score", str(m.average_score))
    table.add_row("High priority", str(m.high_priority))
    table.add_row("Open tasks", str(m.open_tasks))
    for status, count in m.by_status.items():
        table.add_row(status.value, str(count))
    console.print(table)


if __name__ == "__main__":
    main()
