"""
Rendering functions for pkgrecompile output.

This module handles all pretty-printing and table formatting.
Core functions return data, this module makes it human-readable.
"""

from rich.table import Table
from rich.console import Console
from rich import box
from typing import List, Dict, Any

console = Console()


def render_plan_table(tasks: List[Dict[str, Any]]) -> None:
    """
    Render planned tasks, one row per task, in processing order.

    Args:
        tasks: Task dictionaries (see Task.to_dict) with an `order` key
    """
    if not tasks:
        console.print("[yellow]Nothing to compile.[/yellow]")
        return

    table = Table(
        title="Planned tasks",
        box=box.ROUNDED,
        show_header=True,
        header_style="bold magenta"
    )
    table.add_column("#", justify="right", style="dim")
    table.add_column("Entry point", style="cyan")
    table.add_column("Format property", style="green")
    table.add_column("Also marks")
    table.add_column("Typings", justify="center")

    for task in tasks:
        also_marks = [p for p in task.get("mark_as_processed", []) if p != task["format_property"]]
        table.add_row(
            str(task.get("order", "")),
            task["entry_point"],
            task["format_property"],
            ", ".join(also_marks) or "-",
            "[green]yes[/green]" if task.get("process_dts") else "-",
        )

    console.print(table)
    print_plan_summary(tasks)


def print_plan_summary(tasks: List[Dict[str, Any]]) -> None:
    entry_points = {task["path"] for task in tasks}
    console.print(f"\n[bold]{len(tasks)}[/bold] task(s) across [bold]{len(entry_points)}[/bold] entry-point(s)")
