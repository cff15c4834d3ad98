"""
Result rendering for lane-broker.

Formats finished assignments as a fixed-width table and summarizes a run.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Sequence

if TYPE_CHECKING:
    from lane_broker.models import Assignment
    from lane_broker.simulation import SimulationResult

COLUMNS = ("Job", "Status", "Node", "Lanes", "Start", "Finish", "Exec Time")


def format_duration(seconds: float) -> str:
    """Format seconds as human-readable duration."""
    if seconds < 60:
        return f"{seconds:.0f}s"
    elif seconds < 3600:
        minutes = seconds / 60
        return f"{minutes:.1f}m"
    else:
        hours = seconds / 3600
        return f"{hours:.1f}h"


def _row(assignment: Assignment) -> tuple[str, ...]:
    end = assignment.end_time if assignment.end_time is not None else assignment.finish_time
    return (
        assignment.job.id,
        assignment.job.status.value.upper(),
        str(assignment.node.node_id),
        str(len(assignment.lanes)),
        f"{assignment.start_time:.1f}",
        f"{end:.1f}",
        f"{end - assignment.start_time:.1f}",
    )


def build_table(assignments: Sequence[Assignment]) -> str:
    """
    Render assignments as a table, grouped by node.

    Rows keep completion order within each node.
    """
    ordered = sorted(assignments, key=lambda a: a.node.node_id)
    rows = [COLUMNS] + [_row(a) for a in ordered]
    widths = [max(len(row[i]) for row in rows) for i in range(len(COLUMNS))]

    def line(row: tuple[str, ...]) -> str:
        return " | ".join(cell.rjust(width) for cell, width in zip(row, widths))

    separator = "-+-".join("-" * width for width in widths)
    body = [line(row) for row in rows[1:]]
    return "\n".join([line(rows[0]), separator] + body)


def summarize(result: SimulationResult) -> str:
    """One-line summary of a simulation run."""
    parts = [
        f"{len(result.finished)} finished",
        f"{len(result.stuck)} stuck",
        f"{len(result.pending)} pending",
        f"peak {result.peak_active} concurrent",
        f"makespan {format_duration(result.end_time)}",
    ]
    return ", ".join(parts)
