"""
Command-line interface for lane-broker.

Provides a Click-based CLI that runs a queueing scenario on simulated nodes
and prints the finished jobs.
"""

from __future__ import annotations

import sys
from typing import Optional

import click

from lane_broker.config import Config, configure_logging, load_config
from lane_broker.placement import POLICIES
from lane_broker.report import build_table, summarize
from lane_broker.simulation import SimulationResult, simulate


def echo_status(message: str, level: str = "info") -> None:
    """Print a status message with appropriate styling."""
    prefix = {
        "info": click.style("[*]", fg="blue"),
        "success": click.style("[+]", fg="green"),
        "warning": click.style("[!]", fg="yellow"),
        "error": click.style("[-]", fg="red"),
        "wait": click.style("[~]", fg="cyan"),
    }.get(level, "[*]")
    click.echo(f"{prefix} {message}")


def run_scenario(config: Config, quiet: bool = False) -> SimulationResult:
    """
    Run the configured scenario and report the outcome.

    Args:
        config: Validated configuration
        quiet: If True, skip the result table

    Returns:
        SimulationResult of the run
    """
    echo_status(
        f"{config.job_count} job(s) of {config.job_lanes} lane(s) on "
        f"{config.node_count} node(s) x {config.node_lanes} lane(s), "
        f"{config.policy}",
        "info",
    )
    result = simulate(config)

    if result.finished and not quiet:
        click.echo(build_table(result.finished))

    for job in result.stuck:
        echo_status(f"{job.id} can never be admitted: {job.footprint}", "error")
    if result.pending:
        echo_status(f"{len(result.pending)} job(s) left waiting", "warning")

    echo_status(summarize(result), "success" if result.ok else "warning")
    return result


@click.command()
@click.option(
    "--config",
    "-c",
    "config_path",
    type=click.Path(exists=True),
    help="Path to config file",
)
@click.option(
    "--jobs",
    "-j",
    type=int,
    help="Override number of jobs (default: from config)",
)
@click.option(
    "--job-lanes",
    type=int,
    help="Override lanes required per job",
)
@click.option(
    "--lanes",
    "-l",
    type=int,
    help="Override lanes per node",
)
@click.option(
    "--nodes",
    type=int,
    help="Override number of nodes",
)
@click.option(
    "--policy",
    type=click.Choice(sorted(POLICIES)),
    help="Placement policy (default: from config)",
)
@click.option(
    "--verbose",
    "-v",
    is_flag=True,
    help="Log every admission and release",
)
@click.option(
    "--quiet",
    "-q",
    is_flag=True,
    help="Only print the summary",
)
@click.version_option(package_name="lane-broker")
def main(
    config_path: Optional[str],
    jobs: Optional[int],
    job_lanes: Optional[int],
    lanes: Optional[int],
    nodes: Optional[int],
    policy: Optional[str],
    verbose: bool,
    quiet: bool,
) -> None:
    """
    Run jobs through admission control on a fixed pool of lanes.

    Jobs wait in a FIFO queue and are admitted whenever a node frees enough
    lanes, memory, bandwidth and storage; jobs that can never fit are
    reported as stuck.

    \b
    Examples:
        lane-broker
        lane-broker --jobs 10 --job-lanes 2
        lane-broker --nodes 2 --policy worst-fit
        lane-broker --config scenario.yaml --verbose
    """
    # Load config
    config = load_config(config_path)

    # Apply CLI overrides
    if jobs is not None:
        config.job_count = jobs
    if job_lanes is not None:
        config.job_lanes = job_lanes
    if lanes is not None:
        config.node_lanes = lanes
    if nodes is not None:
        config.node_count = nodes
    if policy:
        config.policy = policy
    if verbose:
        config.log_level = "DEBUG"

    # Validate arguments
    try:
        config.validate()
    except ValueError as e:
        raise click.UsageError(str(e))

    configure_logging(config)

    result = run_scenario(config, quiet=quiet)
    sys.exit(0 if result.ok else 1)


if __name__ == "__main__":
    main()
