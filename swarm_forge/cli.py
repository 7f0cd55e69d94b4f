"""
Main CLI entry point for Swarm Forge.
"""

import argparse
import asyncio
import logging
import mimetypes
import signal
from pathlib import Path
from typing import Optional

from rich.console import Console
from rich.live import Live
from rich.logging import RichHandler
from rich.panel import Panel

from .config import (
    EXECUTION_MODES,
    Config,
    api_key_env_vars,
    create_sample_config,
    get_config_path,
    load_config,
)
from .orchestration import ExecutionMode, FileAttachment, MissionControl, MissionEventType, summarize_error
from . import stats
from .ui import ui

console = Console()
logger = logging.getLogger("swarm_forge")


def setup_logging(verbose: bool = False):
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=console, rich_tracebacks=True, show_path=verbose)],
    )
    # SDK transport chatter stays out of the mission view
    for name in ("httpx", "httpcore", "google_genai", "openai"):
        logging.getLogger(name).setLevel(logging.WARNING)


def show_config(config: Config):
    models = "\n".join(f"  {name}: [cyan]{value}[/cyan]" for name, value in vars(config.models).items())
    config_text = f"""
[bold]Configuration:[/bold]
  Config file: [cyan]{get_config_path()}[/cyan]
  Provider: [cyan]{config.gateway.provider}[/cyan]
  API key: [cyan]{"set" if config.is_configured() else "missing"}[/cyan]
  Execution mode: [cyan]{config.execution.mode}[/cyan]
  Max concurrency: [cyan]{config.execution.max_concurrency or "unbounded"}[/cyan]
  Timeout: [cyan]{config.policy.timeout:g}s[/cyan] (video [cyan]{config.policy.video_timeout:g}s[/cyan])
  Max retries: [cyan]{config.policy.max_retries}[/cyan]

[bold]Models:[/bold]
{models}
"""
    console.print(Panel(config_text, title="Configuration", border_style="cyan"))


def load_attachments(paths: list[str]) -> list[FileAttachment]:
    attachments = []
    for raw_path in paths:
        path = Path(raw_path).expanduser()
        mime_type, _ = mimetypes.guess_type(path.name)
        attachments.append(FileAttachment(
            data=path.read_bytes(),
            mime_type=mime_type or "application/octet-stream",
            name=path.name,
        ))
    return attachments


def _install_abort_handler(control: MissionControl) -> bool:
    loop = asyncio.get_running_loop()

    def on_interrupt():
        if control.abort_mission():
            console.print("\n[yellow]Abort requested, waiting for in-flight tasks...[/yellow]")

    try:
        loop.add_signal_handler(signal.SIGINT, on_interrupt)
    except NotImplementedError:
        return False
    return True


async def run_mission(config: Config, directive: str, files: list[FileAttachment]) -> bool:
    control = MissionControl(config)
    monitor = ui.create_mission_monitor(title=f"Mission · {config.execution.mode}")
    control.subscribe(monitor.handle_event)
    control.subscribe(
        lambda event: logger.debug("Phase → %s", event.payload["phase"]),
        [MissionEventType.PHASE_CHANGED],
    )

    handler_installed = _install_abort_handler(control)
    stats.reset_stats()
    ui.print_directive(directive, len(files))

    try:
        with Live(monitor, console=console, refresh_per_second=10):
            report = await control.submit_directive(directive, files)
    finally:
        if handler_installed:
            asyncio.get_running_loop().remove_signal_handler(signal.SIGINT)

    ui.print_report(report)
    ui.print_artifacts(report.artifacts)
    ui.print_stats(stats.get_stats().as_dict())
    return not report.failed


def main():
    parser = argparse.ArgumentParser(description="Swarm Forge - directive-driven generative swarm")
    parser.add_argument(
        "directive",
        nargs="?",
        help="Directive to plan and execute",
    )
    parser.add_argument(
        "--file",
        "-f",
        action="append",
        default=[],
        help="Attach a file (image, video, document); may be repeated",
    )
    parser.add_argument(
        "--mode",
        "-m",
        type=str,
        choices=EXECUTION_MODES,
        help="Execution mode for this mission",
    )
    parser.add_argument(
        "--config-file",
        type=str,
        help="Path to an alternative config file",
    )
    parser.add_argument(
        "--config",
        "-c",
        action="store_true",
        help="Show current configuration",
    )
    parser.add_argument(
        "--init",
        action="store_true",
        help="Create a sample configuration file",
    )
    parser.add_argument(
        "--nodes",
        action="store_true",
        help="List the node manifest",
    )
    parser.add_argument(
        "--verbose",
        "-v",
        action="store_true",
        help="Verbose logging",
    )

    args = parser.parse_args()

    if args.init:
        create_sample_config()
        console.print(f"[green]Config file ready at {get_config_path()}[/green]")
        console.print("[dim]Edit it to add your API key.[/dim]")
        return

    config_path: Optional[Path] = Path(args.config_file).expanduser() if args.config_file else None
    try:
        config = load_config(config_path)
    except ValueError as e:
        ui.print_error(f"Invalid configuration: {e}")
        raise SystemExit(2)

    if args.mode:
        config.execution.mode = ExecutionMode(args.mode).value
    setup_logging(args.verbose or config.verbose)

    if args.config:
        show_config(config)
        return

    if args.nodes:
        ui.print_nodes()
        return

    if not args.directive:
        parser.print_help()
        return

    if not config.is_configured():
        env_names = " or ".join(api_key_env_vars(config.gateway.provider))
        ui.print_error(f"No API key configured.\nRun `swarm-forge --init` or set {env_names}.")
        raise SystemExit(1)

    try:
        files = load_attachments(args.file)
    except OSError as e:
        ui.print_error(f"Cannot read attachment: {e}")
        raise SystemExit(1)

    ui.print_banner()
    try:
        succeeded = asyncio.run(run_mission(config, args.directive, files))
    except Exception as e:
        ui.print_error(summarize_error(e))
        raise SystemExit(1)

    if not succeeded:
        raise SystemExit(1)


if __name__ == "__main__":
    main()
