"""Tests for the report module."""

from lane_broker.broker import AdmissionBroker
from lane_broker.models import Job
from lane_broker.node import ExecutionNode
from lane_broker.report import COLUMNS, build_table, format_duration, summarize
from lane_broker.simulation import SimulationClock


def run_jobs(*lanes: int, node_lanes: tuple[int, ...] = (4,)):
    """Helper to run jobs of the given widths and return the result."""
    sim = SimulationClock()
    nodes = [ExecutionNode(node_id=i, lanes=n) for i, n in enumerate(node_lanes)]
    broker = AdmissionBroker(nodes, clock=sim.now)
    sim.attach(broker)
    broker.submit([Job(id=f"job-{i}", lanes=n, length=10000) for i, n in enumerate(lanes)])
    return sim.run()


class TestFormatDuration:
    def test_seconds(self):
        assert format_duration(45) == "45s"

    def test_minutes(self):
        assert format_duration(90) == "1.5m"

    def test_hours(self):
        assert format_duration(7200) == "2.0h"

    def test_boundary_seconds_minutes(self):
        assert format_duration(59) == "59s"
        assert format_duration(60) == "1.0m"

    def test_boundary_minutes_hours(self):
        assert format_duration(3599) == "60.0m"
        assert format_duration(3600) == "1.0h"


class TestBuildTable:
    def test_header_and_separator(self):
        lines = build_table(run_jobs(4).finished).splitlines()
        for column in COLUMNS:
            assert column in lines[0]
        assert set(lines[1]) <= {"-", "+"}

    def test_one_row_per_assignment(self):
        table = build_table(run_jobs(4, 4, 4).finished)
        assert len(table.splitlines()) == 2 + 3

    def test_row_contents(self):
        row = build_table(run_jobs(2).finished).splitlines()[2]
        cells = [cell.strip() for cell in row.split("|")]
        assert cells == ["job-0", "FINISHED", "0", "2", "0.0", "10.0", "10.0"]

    def test_rows_grouped_by_node(self):
        result = run_jobs(4, 4, 4, node_lanes=(4, 4))
        rows = build_table(result.finished).splitlines()[2:]
        node_ids = [row.split("|")[2].strip() for row in rows]
        assert node_ids == sorted(node_ids)

    def test_empty(self):
        assert len(build_table([]).splitlines()) == 2


class TestSummarize:
    def test_counts(self):
        summary = summarize(run_jobs(4, 4, 5))
        assert "2 finished" in summary
        assert "1 stuck" in summary
        assert "0 pending" in summary
        assert "peak 1 concurrent" in summary
        assert "makespan 20s" in summary
