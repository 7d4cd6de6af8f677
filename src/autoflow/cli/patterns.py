"""
CLI: ``learn_patterns`` — mine shell history for shortcuts and workflows.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any

import typer

from autoflow.cli.utils import console, err_console, make_context, output_result, run_app
from autoflow.core.errors import AutomationError

app = typer.Typer(
    name="learn_patterns",
    help="Command pattern learning from shell history.",
    add_completion=False,
    rich_markup_mode="rich",
)


def _render(data: dict[str, Any]) -> None:
    report = data["report"]
    minimum = report["min_frequency"]

    def surfaced(rows: list[dict[str, Any]]) -> list[dict[str, Any]]:
        return [r for r in rows if r["count"] >= minimum]

    console.print(f"🧠 Analysed {report['line_count']} history lines")
    console.print("\n📊 Most frequent commands:")
    for row in surfaced(report["commands"]):
        console.print(f"   🔸 {row['pattern']}: {row['count']} times")
    console.print("\n📋 Most frequent command lines:")
    for row in surfaced(report["command_lines"]):
        console.print(f"   🔹 {row['pattern']}: {row['count']} times")
    console.print("\n🔗 Common command sequences:")
    for row in surfaced(report["sequences"]):
        console.print(f"   🔗 {row['pattern']} ({row['count']} times)")
    if report.get("directories"):
        console.print("\n📁 Directory-specific patterns:")
        for row in report["directories"]:
            console.print(f"   📂 {row['pattern']}: {row['count']} times")

    if "shortcuts" in data:
        if data["shortcuts"]:
            console.print(f"\n⚡ Created {len(data['shortcuts'])} shortcuts")
            for shortcut in data["shortcuts"]:
                console.print(f"   ⚡ {shortcut['name']} → {shortcut['body']}")
        else:
            console.print("\n📭 No suitable shortcuts identified")
    if "suggestions" in data:
        if data["suggestions"]:
            console.print(f"\n🤖 Generated {len(data['suggestions'])} workflow suggestions")
            for suggestion in data["suggestions"]:
                console.print(
                    f"   💡 {suggestion['workflow']}: {suggestion['pattern']} "
                    f"({suggestion['count']} occurrences)"
                )
        else:
            console.print("\n📭 No clear automation opportunities identified")
    if "model" in data:
        console.print(f"\n🧮 Model updated: {data['model']['commands']} commands")

    if data["files"]:
        console.print("\n📄 Written:")
        for path in data["files"]:
            console.print(f"   {path}")


@app.command()
def learn(
    analyze_history: bool = typer.Option(False, "--analyze-history", help="Analyze history for patterns"),
    create_shortcuts: bool = typer.Option(False, "--create-shortcuts", help="Generate aliases and functions"),
    suggest_workflows: bool = typer.Option(False, "--suggest-workflows", help="Suggest workflows"),
    update_models: bool = typer.Option(False, "--update-models", help="Rebuild the next-command model"),
    top_n: int = typer.Option(10, "--top-n", "-n", min=1, help="Entries per table"),
    min_frequency: int = typer.Option(3, "--min-frequency", min=1, help="Minimum count to report"),
    verbose: bool = typer.Option(False, "--verbose", "-v"),
    history: Path | None = typer.Option(None, "--history", help="History file (default: $HISTFILE)"),
    background: bool = typer.Option(False, "--background", help="Mine on a worker thread"),
    json_out: bool = typer.Option(False, "--json"),
) -> None:
    """Learn command patterns. Defaults to --analyze-history."""
    from autoflow.ops.patterns import learn_patterns, submit_learning
    from autoflow.ops.requests import LearnPatternsRequest
    from autoflow.ops.result import OperationResult

    ctx = make_context(verbose=verbose, as_json=json_out)
    request = LearnPatternsRequest(
        analyze_history=analyze_history,
        create_shortcuts=create_shortcuts,
        suggest_workflows=suggest_workflows,
        update_models=update_models,
        top_n=top_n,
        min_frequency=min_frequency,
        verbose=verbose,
        history_file=history,
    )

    if not background:
        output_result(learn_patterns(ctx, request), as_json=json_out, render=_render)
        return

    submitted = submit_learning(ctx, request)
    if not submitted.success or submitted.data is None:
        output_result(submitted, as_json=json_out)
        return
    task = submitted.data
    err_console.print("⏳ Mining in the background (Ctrl-C to cancel)…")
    try:
        result = task.wait()
    except KeyboardInterrupt:
        task.cancel()
        err_console.print("[yellow]Cancelled[/yellow]")
        raise typer.Exit(code=130) from None
    except AutomationError as exc:
        output_result(OperationResult.from_error(exc), as_json=json_out)
        return
    output_result(OperationResult.ok(result.to_dict()), as_json=json_out, render=_render)


def main() -> None:
    """Console-script entry point."""
    run_app(app)


if __name__ == "__main__":
    main()
