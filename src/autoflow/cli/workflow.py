"""
CLI: ``autoflow`` — create, record, run and inspect workflows.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any

import typer
from rich.table import Table

from autoflow.cli.utils import console, make_context, output_result, parse_assignments, run_app
from autoflow.orchestration.recorder import STOP_COMMAND, hook_script

app = typer.Typer(
    name="autoflow",
    help="Workflow automation: record, run and analyze shell workflows.",
    no_args_is_help=True,
    rich_markup_mode="rich",
)
record_app = typer.Typer(no_args_is_help=True, help="Record commands into a workflow.")
app.add_typer(record_app, name="record")


# ── Create / inspect ─────────────────────────────────────────────────────


def _prompt_steps() -> list[str]:
    console.print("Enter step commands, one per line. Empty line to finish.")
    steps: list[str] = []
    while True:
        command = typer.prompt(f"Step {len(steps) + 1}", default="", show_default=False)
        if not command.strip():
            return steps
        steps.append(command)


@app.command("create")
def create(
    name: str = typer.Argument(..., help="Workflow name"),
    description: str = typer.Option("", "--description", "-d"),
    schedule: str = typer.Option("", "--schedule", "-s", help="Schedule metadata"),
    condition: str = typer.Option("", "--condition", "-c", help="Run only if this exits 0"),
    parallel: bool = typer.Option(False, "--parallel", "-p", help="Run steps concurrently"),
    timeout: int = typer.Option(300, "--timeout", help="Whole-workflow timeout (seconds)"),
    retry: int = typer.Option(0, "--retry", help="Default retries per step"),
    on_failure: str = typer.Option("stop", "--on-failure", help="stop | continue"),
    steps: list[str] | None = typer.Option(None, "--step", help="Step command (repeatable)"),
    interactive: bool = typer.Option(False, "--interactive", "-i", help="Prompt for steps"),
    json_out: bool = typer.Option(False, "--json"),
) -> None:
    """Create a new workflow."""
    from autoflow.ops.requests import CreateWorkflowRequest
    from autoflow.ops.workflows import create_workflow

    commands = list(steps or [])
    if interactive:
        commands += _prompt_steps()

    ctx = make_context(as_json=json_out)
    result = create_workflow(
        ctx,
        CreateWorkflowRequest(
            name=name,
            description=description,
            schedule=schedule,
            condition=condition,
            parallel=parallel,
            timeout=timeout,
            retry_count=retry,
            on_failure=on_failure,
            steps=commands,
        ),
    )

    def render(data: dict[str, Any]) -> None:
        console.print(f"✅ Workflow '{data['name']}' created ({data['step_count']} steps)")
        console.print(f"📄 {data['path']}")

    output_result(result, as_json=json_out, render=render)


@app.command("list")
def list_workflows(json_out: bool = typer.Option(False, "--json")) -> None:
    """List stored workflows."""
    from autoflow.ops.workflows import list_workflows as _list

    ctx = make_context(as_json=json_out)
    output_result(_list(ctx), as_json=json_out, title="Workflows")


@app.command("show")
def show(
    name: str = typer.Argument(..., help="Workflow name"),
    json_out: bool = typer.Option(False, "--json"),
) -> None:
    """Show a workflow definition."""
    from autoflow.ops.workflows import get_workflow

    ctx = make_context(as_json=json_out)

    def render(doc: dict[str, Any]) -> None:
        console.print(f"[bold]{doc['name']}[/bold]  {doc['description']}")
        execution = doc["execution"]
        console.print(
            f"  parallel={execution['parallel']} timeout={execution['timeout']} "
            f"retry={execution['retry_count']} on_failure={execution['on_failure']}"
        )
        if doc["triggers"]["condition"]:
            console.print(f"  condition: {doc['triggers']['condition']}")
        table = Table(show_lines=False, pad_edge=False)
        for col in ("id", "command", "enabled", "timeout", "retry", "on_failure"):
            table.add_column(col, overflow="fold")
        for step in doc["steps"]:
            table.add_row(
                step["id"],
                step["command"],
                str(step["enabled"]),
                str(step["timeout"]),
                str(step["retry"]),
                step["on_failure"],
            )
        console.print(table)
        stats = doc["statistics"]
        console.print(
            f"  executions={stats['executions']} successful={stats['successful']} "
            f"failed={stats['failed']} avg={stats['avg_duration']}s"
        )

    output_result(get_workflow(ctx, name), as_json=json_out, render=render)


# ── Run ──────────────────────────────────────────────────────────────────


def _render_run(data: dict[str, Any]) -> None:
    status = data["status"]
    if status == "skipped":
        console.print(f"⏭️  Workflow '{data['workflow_name']}' skipped (condition not met)")
        return
    if status == "dry_run":
        console.print(f"🔍 Dry run: {data['total_steps']} steps would execute")
        return
    icon = "✅" if data["success"] else "❌"
    console.print(f"{icon} Workflow '{data['workflow_name']}' {status}")
    console.print(
        f"   Steps: {data['total_steps']}  successful: {data['successful_steps']}  "
        f"failed: {data['failed_steps']}  duration: {data['duration_seconds']}s"
    )


@app.command("run")
def run(
    name: str = typer.Argument(..., help="Workflow name"),
    verbose: bool = typer.Option(False, "--verbose", "-v"),
    dry_run: bool = typer.Option(False, "--dry-run", "-d"),
    variables: list[str] | None = typer.Option(None, "--set", help="Override a variable (K=V)"),
    json_out: bool = typer.Option(False, "--json"),
) -> None:
    """Run a workflow."""
    from autoflow.ops.requests import RunWorkflowRequest
    from autoflow.ops.workflows import run_workflow

    overrides = parse_assignments(variables)
    ctx = make_context(verbose=verbose, as_json=json_out)
    if not json_out:
        console.print(f"🚀 Running workflow: {name}")
    result = run_workflow(
        ctx,
        RunWorkflowRequest(name=name, verbose=verbose, dry_run=dry_run, variables=overrides),
    )
    output_result(result, as_json=json_out, render=_render_run)


# ── Analytics ────────────────────────────────────────────────────────────


@app.command("analyze")
def analyze(
    since: str | None = typer.Option(None, "--since", help="Look-back window, e.g. 7d, 12h"),
    detailed: bool = typer.Option(False, "--detailed"),
    json_out: bool = typer.Option(False, "--json"),
) -> None:
    """Summarize the execution history."""
    from autoflow.ops.requests import AnalyzeRequest
    from autoflow.ops.workflows import analyze_history

    ctx = make_context(as_json=json_out)

    def render(report: dict[str, Any]) -> None:
        if not report["total"]:
            console.print("📭 No workflow executions recorded")
            return
        console.print("📊 Workflow Execution Analysis")
        console.print(
            f"   Total executions: {report['total']}  successful: {report['successful']}  "
            f"failed: {report['failed']}  success rate: {report['success_rate']:.0%}"
        )
        console.print(f"   Average duration: {report['avg_duration']}s")
        console.print("\n🏆 Most used workflows:")
        for row in report["top_workflows"]:
            console.print(f"   {row['name']}: {row['runs']} runs")
        console.print("\n🕐 Recent executions:")
        for rec in report["recent"]:
            icon = "✅" if rec["failed_steps"] == 0 and rec["successful_steps"] > 0 else "❌"
            console.print(f"   {icon} {rec['timestamp']} {rec['workflow_name']} ({rec['duration_seconds']}s)")
        if report.get("per_workflow"):
            table = Table(title="Per workflow", pad_edge=False)
            for col in ("workflow", "runs", "successful", "failed", "avg_duration", "last_run"):
                table.add_column(col)
            for wf, row in report["per_workflow"].items():
                table.add_row(
                    wf,
                    str(row["runs"]),
                    str(row["successful"]),
                    str(row["failed"]),
                    str(row["avg_duration"]),
                    row["last_run"],
                )
            console.print(table)

    output_result(
        analyze_history(ctx, AnalyzeRequest(since=since, detailed=detailed)),
        as_json=json_out,
        render=render,
    )


@app.command("optimize")
def optimize(
    name: str | None = typer.Argument(None, help="Workflow name (default: all)"),
    json_out: bool = typer.Option(False, "--json"),
) -> None:
    """Suggest improvements from statistics and history."""
    from autoflow.ops.workflows import optimize_workflows

    ctx = make_context(as_json=json_out)

    def render(reports: list[dict[str, Any]]) -> None:
        if not reports:
            console.print("📭 No workflows found")
            return
        for report in reports:
            console.print(
                f"[bold]{report['workflow']}[/bold]  runs={report['executions']} "
                f"failure_rate={report['failure_rate']:.0%} avg={report['avg_duration']}s"
            )
            for suggestion in report["suggestions"] or ["No suggestions"]:
                console.print(f"   💡 {suggestion}")

    output_result(optimize_workflows(ctx, name), as_json=json_out, render=render)


# ── Sharing ──────────────────────────────────────────────────────────────


@app.command("export")
def export(
    name: str = typer.Argument(..., help="Workflow name"),
    output: Path | None = typer.Option(None, "--output", "-o", help="File or directory"),
    json_out: bool = typer.Option(False, "--json"),
) -> None:
    """Export a workflow for sharing (statistics reset)."""
    from autoflow.ops.requests import ExportWorkflowRequest
    from autoflow.ops.workflows import export_workflow

    ctx = make_context(as_json=json_out)
    result = export_workflow(ctx, ExportWorkflowRequest(name=name, destination=output))
    output_result(
        result,
        as_json=json_out,
        render=lambda d: console.print(f"📤 Exported '{d['name']}' to {d['path']}"),
    )


@app.command("import")
def import_(
    path: Path = typer.Argument(..., help="Workflow document to import"),
    name: str | None = typer.Option(None, "--name", help="Store under a different name"),
    force: bool = typer.Option(False, "--force", help="Overwrite an existing workflow"),
    json_out: bool = typer.Option(False, "--json"),
) -> None:
    """Import a workflow document."""
    from autoflow.ops.requests import ImportWorkflowRequest
    from autoflow.ops.workflows import import_workflow

    ctx = make_context(as_json=json_out)
    result = import_workflow(ctx, ImportWorkflowRequest(source=path, name=name, force=force))
    output_result(
        result,
        as_json=json_out,
        render=lambda d: console.print(f"📥 Imported '{d['name']}' ({d['step_count']} steps)"),
    )


# ── Recording ────────────────────────────────────────────────────────────


@record_app.command("start")
def record_start(
    name: str = typer.Argument(..., help="Workflow to record"),
    json_out: bool = typer.Option(False, "--json"),
) -> None:
    """Start recording commands into NAME."""
    from autoflow.ops.workflows import start_recording

    ctx = make_context(as_json=json_out)

    def render(data: dict[str, Any]) -> None:
        console.print(f"🔴 Recording workflow: {data['name']}")
        console.print(f"💡 Run '{STOP_COMMAND}' or 'autoflow record stop' when finished")
        console.print('💡 Needs the shell hook: eval "$(autoflow record hook)"')

    output_result(start_recording(ctx, name), as_json=json_out, render=render)


@record_app.command("capture")
def record_capture(
    line: str = typer.Argument(..., help="Command line to record"),
    json_out: bool = typer.Option(False, "--json"),
) -> None:
    """Append one command line to the active recording."""
    from autoflow.ops.workflows import capture_command

    ctx = make_context(as_json=json_out)
    output_result(capture_command(ctx, line), as_json=json_out, render=lambda d: None)


@record_app.command("stop")
def record_stop(json_out: bool = typer.Option(False, "--json")) -> None:
    """Stop recording and save the workflow."""
    from autoflow.ops.workflows import stop_recording

    ctx = make_context(as_json=json_out)

    def render(data: dict[str, Any]) -> None:
        console.print(f"⏹️  Recording stopped: {data['name']} ({data['step_count']} steps)")
        console.print(f"📄 {data['path']}")

    output_result(stop_recording(ctx), as_json=json_out, render=render)


@record_app.command("status")
def record_status(json_out: bool = typer.Option(False, "--json")) -> None:
    """Show the active recording, if any."""
    from autoflow.ops.workflows import recording_status

    ctx = make_context(as_json=json_out)

    def render(data: dict[str, Any]) -> None:
        if not data["recording"]:
            console.print("No recording in progress")
            return
        console.print(f"🔴 Recording '{data['name']}' since {data['started_at']} ({data['commands']} commands)")

    output_result(recording_status(ctx), as_json=json_out, render=render)


@record_app.command("prompt", hidden=True)
def record_prompt() -> None:
    """Print the prompt prefix for the active recording (used by the hook)."""
    from autoflow.ops.workflows import recording_prompt

    output_result(recording_prompt(make_context()), render=lambda prefix: typer.echo(prefix, nl=False))


@record_app.command("hook")
def record_hook() -> None:
    """Print the bash hook. Install with: eval "$(autoflow record hook)"."""
    ctx = make_context()
    typer.echo(hook_script(ctx.session_file.path))


def main() -> None:
    """Console-script entry point."""
    run_app(app)


if __name__ == "__main__":
    main()
