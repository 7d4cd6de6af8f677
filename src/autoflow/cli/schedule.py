"""
CLI: ``smartschedule`` — named tasks on the user crontab.
"""

from __future__ import annotations

from typing import Any

import typer

from autoflow.cli.utils import console, make_context, output_result, run_app

app = typer.Typer(
    name="smartschedule",
    help="Intelligent task scheduling on top of cron.",
    no_args_is_help=True,
    rich_markup_mode="rich",
)


@app.command("add")
def add(
    name: str = typer.Option(..., "--name", "-n", help="Task name"),
    command: str = typer.Option(..., "--command", "-c", help="Command to execute"),
    time: str = typer.Option("", "--time", "-t", help="Cron expression or daily/hourly/weekly/…"),
    adaptive: bool = typer.Option(False, "--adaptive", help="Store without a trigger (manual runs only)"),
    condition: str = typer.Option("", "--condition", help="Run only if this exits 0"),
    retry: int = typer.Option(0, "--retry", min=0, help="Retry attempts on failure"),
    json_out: bool = typer.Option(False, "--json"),
) -> None:
    """Schedule a new task."""
    from autoflow.ops.requests import AddTaskRequest
    from autoflow.ops.schedules import add_task

    ctx = make_context(as_json=json_out)
    result = add_task(
        ctx,
        AddTaskRequest(
            name=name,
            command=command,
            schedule=time,
            adaptive=adaptive,
            condition=condition,
            retry_count=retry,
        ),
    )

    def render(task: dict[str, Any]) -> None:
        console.print(f"⏰ Task '{task['name']}' scheduled ({task['kind']})")
        if task["kind"] == "cron":
            console.print(f"⚙️  Cron: {task['schedule']}  next run: {task['next_run']}")

    output_result(result, as_json=json_out, render=render)


@app.command("list")
def list_tasks(json_out: bool = typer.Option(False, "--json")) -> None:
    """Show scheduled tasks."""
    from autoflow.ops.schedules import list_tasks as _list

    ctx = make_context(as_json=json_out)

    def render(entries: list[dict[str, Any]]) -> None:
        if not entries:
            console.print("📭 No scheduled tasks found")
            console.print("💡 Add one with: smartschedule add -n task-name -c command")
            return
        for entry in entries:
            console.print(f"⏰ {entry['name']}  [dim]({entry['kind']})[/dim]")
            console.print(f"   📋 Command: {entry['command']}", markup=False)
            console.print(f"   ⏲️  Schedule: {entry['schedule']}", markup=False)
            console.print(f"   ⏭️  Next run: {entry['next_run'] or '-'}")

    output_result(_list(ctx), as_json=json_out, render=render)


@app.command("run")
def run(
    name: str = typer.Argument(..., help="Task name"),
    json_out: bool = typer.Option(False, "--json"),
) -> None:
    """Run a task now, honoring its condition and retries."""
    from autoflow.ops.schedules import run_task

    ctx = make_context(as_json=json_out)

    def render(data: dict[str, Any]) -> None:
        if data["status"] == "skipped":
            console.print(f"⏭️  Task '{name}' skipped (condition not met)")
            return
        icon = "✅" if data["status"] == "completed" else "❌"
        console.print(f"{icon} Task '{name}' {data['status']} after {data['attempts']} attempt(s)")

    output_result(run_task(ctx, name), as_json=json_out, render=render)


@app.command("remove")
def remove(
    name: str = typer.Argument(..., help="Task name"),
    json_out: bool = typer.Option(False, "--json"),
) -> None:
    """Remove a task and its crontab line."""
    from autoflow.ops.schedules import remove_task

    ctx = make_context(as_json=json_out)
    output_result(
        remove_task(ctx, name),
        as_json=json_out,
        render=lambda d: console.print(f"🗑️  Task '{d['name']}' removed"),
    )


@app.command("analyze")
def analyze(json_out: bool = typer.Option(False, "--json")) -> None:
    """Task counts by kind and by hour."""
    from autoflow.ops.schedules import analyze_schedule

    ctx = make_context(as_json=json_out)

    def render(data: dict[str, Any]) -> None:
        console.print(f"📊 {data['total']} scheduled tasks")
        for kind, count in data["by_kind"].items():
            console.print(f"   {kind}: {count}")
        if data["by_hour"]:
            console.print("\n🕐 By hour:")
            for slot, names in data["by_hour"].items():
                console.print(f"   {slot}: {', '.join(names)}")

    output_result(analyze_schedule(ctx), as_json=json_out, render=render)


@app.command("optimize")
def optimize(json_out: bool = typer.Option(False, "--json")) -> None:
    """Suggest timing changes. Nothing is modified."""
    from autoflow.ops.schedules import optimize_schedule

    ctx = make_context(as_json=json_out)

    def render(suggestions: list[str]) -> None:
        if not suggestions:
            console.print("✅ No scheduling conflicts found")
            return
        for line in suggestions:
            console.print(f"💡 {line}", markup=False)

    output_result(optimize_schedule(ctx), as_json=json_out, render=render)


def main() -> None:
    """Console-script entry point."""
    run_app(app)


if __name__ == "__main__":
    main()
