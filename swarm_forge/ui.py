"""
Terminal UI for Swarm Forge missions.
"""

from collections import deque
from typing import Deque

from rich.box import ROUNDED
from rich.console import Console, Group, RenderableType
from rich.panel import Panel
from rich.spinner import Spinner
from rich.table import Table
from rich.text import Text

from .orchestration.events import LogLevel, MissionEvent, MissionEventType
from .orchestration.nodes import NODE_MANIFEST
from .orchestration.state import MissionReport, TaskStatus

console = Console()

_LOG_STYLES = {
    LogLevel.INFO.value: "dim",
    LogLevel.SUCCESS.value: "green",
    LogLevel.WARNING.value: "yellow",
    LogLevel.ERROR.value: "red",
}


class MissionMonitor:
    """Renders live task status with a scrolling mission log."""
    def __init__(self, title: str = "Mission", max_logs: int = 5):
        self.logs: Deque[Text] = deque(maxlen=max_logs)
        self.tasks: dict[str, dict] = {}
        self.phase = "IDLE"
        self.artifact_count = 0
        self.spinner = Spinner("dots", style="cyan")
        self.title = title

    def handle_event(self, event: MissionEvent):
        payload = event.payload
        if event.event_type == MissionEventType.TASK_STATUS_CHANGED:
            self.tasks[payload["id"]] = payload
        elif event.event_type == MissionEventType.PHASE_CHANGED:
            self.phase = payload["phase"]
        elif event.event_type == MissionEventType.ARTIFACT_ADDED:
            self.artifact_count += 1
        elif event.event_type == MissionEventType.LOG_LINE:
            node = payload.get("node") or "MC"
            style = _LOG_STYLES.get(payload.get("level"), "dim")
            self.logs.append(Text(f"[{node}] {payload['message']}", style=style))

    def __rich__(self) -> RenderableType:
        task_table = Table(box=None, show_header=False, padding=(0, 2))
        task_table.add_column("Status", width=3)
        task_table.add_column("Node", style="cyan", width=6)
        task_table.add_column("Task")
        task_table.add_column("State", style="dim")

        for task in self.tasks.values():
            status = task["status"]
            if status == TaskStatus.COMPLETED.value:
                icon = Text("✓", style="green")
            elif status == TaskStatus.HALTED.value:
                icon = Text("✗", style="red")
            elif status == TaskStatus.ACTIVE.value:
                icon = self.spinner
            else:
                icon = Text("○", style="dim")

            state = task.get("error") or status
            task_table.add_row(icon, task["assignedNode"], task["label"], state)

        log_panel = Panel(
            Group(*self.logs) if self.logs else Text("Waiting for logs...", style="dim"),
            title=f"[cyan]{self.title}[/cyan]",
            border_style="cyan dim",
            box=ROUNDED,
            height=self.logs.maxlen + 2,
            padding=(0, 1),
        )

        return Group(
            Panel(
                task_table,
                title=f"[bold]{self.phase}[/bold] [dim]· {self.artifact_count} artifact(s)[/dim]",
                border_style="blue",
                box=ROUNDED,
            ),
            log_panel,
        )


class ForgeUI:
    def create_mission_monitor(self, title: str = "Mission") -> MissionMonitor:
        return MissionMonitor(title=title)

    def print_banner(self):
        console.print()
        console.print(f"[bold blue]╭─ Swarm Forge {'─' * 46}[/bold blue]")
        console.print("[bold blue]│[/bold blue] [bold white]Directive-driven generative swarm orchestration[/bold white]")
        console.print(f"[bold blue]╰{'─' * 60}[/bold blue]")

    def print_directive(self, text: str, attachments: int = 0):
        console.print()
        console.print(f"[green]╭─ Directive ─{'─' * 47}[/green]")
        console.print(f"[green]│[/green] {text[:100]}")
        if attachments:
            console.print(f"[green]│[/green] [dim]{attachments} attachment(s)[/dim]")
        console.print(f"[green]╰──────────────────────────────────────────────────[/green]")

    def print_report(self, report: MissionReport):
        if report.cancelled:
            color, verdict = "yellow", "Aborted"
        elif report.failed:
            color, verdict = "red", "Failed"
        elif report.partial:
            color, verdict = "yellow", "Partial"
        else:
            color, verdict = "green", "Complete"

        console.print()
        console.print(f"[{color}]╭─ {verdict}: {report.mission_id} {'─' * 30}[/{color}]")
        if report.plan_failure:
            console.print(f"[{color}]│[/{color}] [dim]Emergency plan used ({report.plan_failure.value})[/dim]")
        for task in report.tasks:
            icon = "[green]✓[/green]" if task.status == TaskStatus.COMPLETED else "[red]✗[/red]" if task.status == TaskStatus.HALTED else "[dim]○[/dim]"
            line = f"{icon} [white]{task.label}[/white] [dim]({task.assigned_node})[/dim]"
            if task.error_message:
                line += f" [red]{task.error_message[:70]}[/red]"
            console.print(f"[{color}]│[/{color}] {line}")
        console.print(f"[{color}]╰─ {len(report.artifacts)} artifact(s) in {report.elapsed:.1f}s[/{color}]")

    def print_artifacts(self, artifacts: list, limit: int = 60):
        if not artifacts:
            return
        table = Table(box=ROUNDED, border_style="magenta", title="Artifacts")
        table.add_column("Kind", style="magenta")
        table.add_column("Label")
        table.add_column("Node", style="cyan")
        table.add_column("Payload", style="dim")
        for artifact in artifacts:
            payload = artifact.payload
            if payload.startswith("data:"):
                payload = f"{payload.split(';', 1)[0]} ({len(payload)} chars)"
            table.add_row(artifact.kind.value, artifact.label, artifact.originating_node, payload[:limit])
        console.print(table)

    def print_nodes(self):
        table = Table(box=ROUNDED, border_style="cyan", title="Node Manifest")
        table.add_column("Node", style="cyan")
        table.add_column("Name")
        table.add_column("Cluster", style="dim")
        table.add_column("Specialty", style="magenta")
        for node in NODE_MANIFEST.values():
            table.add_row(node.id, node.name, node.cluster.value, node.specialty.value if node.specialty else "")
        console.print(table)

    def print_error(self, error: str):
        console.print()
        console.print(f"[red]╭─ ✗ Error ─{'─' * 48}[/red]")
        lines = error.split("\n")[:10]
        for line in lines:
            console.print(f"[red]│[/red] {line[:90]}")
        console.print(f"[red]╰──────────────────────────────────────────────────[/red]")

    def print_stats(self, stats_data: dict):
        console.print()
        console.print(f"[yellow]╭─ 📊 Statistics ─{'─' * 42}[/yellow]")
        for k, v in stats_data.items():
            console.print(f"[yellow]│[/yellow] [cyan]{k}:[/cyan] {v}")
        console.print(f"[yellow]╰──────────────────────────────────────────────────[/yellow]")


ui = ForgeUI()
