"""
Discrete-event driver for lane-broker.

Advances virtual time from one job completion to the next, releasing each
finished assignment back to the broker. Node state changes published by the
broker make it admit the next waiting jobs, whose completions are scheduled
in turn, until nothing is left to run.
"""

from __future__ import annotations

import heapq
import itertools
import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Optional

from lane_broker.broker import AdmissionBroker
from lane_broker.models import Assignment, Job
from lane_broker.node import ExecutionNode
from lane_broker.placement import get_policy

if TYPE_CHECKING:
    from lane_broker.config import Config

logger = logging.getLogger(__name__)


@dataclass
class SimulationResult:
    """Outcome of a simulation run."""

    finished: list[Assignment]
    stuck: list[Job]
    pending: list[Job]
    peak_active: int
    end_time: float
    events: int
    stats: dict[str, int] = field(default_factory=dict)

    @property
    def drained(self) -> bool:
        """True when no job was left waiting."""
        return not self.pending

    @property
    def ok(self) -> bool:
        return self.drained and not self.stuck


class SimulationClock:
    """
    Virtual clock that executes admitted jobs.

    Attach a broker built with ``clock=sim.now`` so job timestamps use
    virtual time, then call run().
    """

    def __init__(self, start: float = 0.0):
        self._now = start
        self._events: list[tuple[float, int, Assignment]] = []
        self._sequence = itertools.count()
        self.broker: Optional[AdmissionBroker] = None
        self.processed = 0

    def now(self) -> float:
        return self._now

    def attach(self, broker: AdmissionBroker) -> None:
        """Schedule the completion of every assignment the broker creates."""
        self.broker = broker
        broker.add_admission_listener(self.schedule)

    def schedule(self, assignment: Assignment) -> None:
        heapq.heappush(
            self._events,
            (assignment.finish_time, next(self._sequence), assignment),
        )

    @property
    def scheduled(self) -> int:
        return len(self._events)

    def run(self, max_events: Optional[int] = None) -> SimulationResult:
        """
        Run until no completion is left to process.

        Fires one state-change event per node to start admission, then
        releases assignments in finish-time order.

        Args:
            max_events: Stop after this many completions

        Returns:
            SimulationResult for the run
        """
        broker = self.broker
        if broker is None:
            raise RuntimeError("Attach a broker before running the simulation")

        logger.info("Starting simulation at t=%.2f", self._now)
        for node in broker.nodes:
            broker.channel.publish(node)

        while self._events:
            if max_events is not None and self.processed >= max_events:
                logger.info("Stopping after %d events", self.processed)
                break
            finish_time, _, assignment = heapq.heappop(self._events)
            self._now = max(self._now, finish_time)
            self.processed += 1
            broker.release(assignment)

        pending = broker.pending_jobs()
        if pending and not self._events:
            logger.warning(
                "%d job(s) still pending with nothing running", len(pending)
            )

        return SimulationResult(
            finished=broker.completed_assignments(),
            stuck=broker.stuck_jobs(),
            pending=pending,
            peak_active=broker.peak_active,
            end_time=self._now,
            events=self.processed,
            stats=broker.get_stats(),
        )


def build_nodes(config: Config) -> list[ExecutionNode]:
    """Create the configured execution nodes."""
    return [
        ExecutionNode(
            node_id=i,
            lanes=config.node_lanes,
            memory=config.node_memory,
            bandwidth=config.node_bandwidth,
            storage=config.node_storage,
            lane_rate=config.lane_rate,
        )
        for i in range(config.node_count)
    ]


def build_workload(config: Config) -> list[Job]:
    """Create the configured homogeneous job list."""
    return [
        Job(
            id=f"job-{i}",
            lanes=config.job_lanes,
            length=config.job_length,
            memory=config.job_memory,
            bandwidth=config.job_bandwidth,
            storage=config.job_storage,
        )
        for i in range(config.job_count)
    ]


def simulate(config: Config) -> SimulationResult:
    """Build nodes, broker and workload from a config and run them."""
    sim = SimulationClock()
    broker = AdmissionBroker(
        build_nodes(config),
        policy=get_policy(config.policy),
        clock=sim.now,
    )
    sim.attach(broker)
    broker.submit(build_workload(config))
    return sim.run()
