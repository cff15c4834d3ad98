"""
Data model for lane-broker.

Jobs, their resource footprints, processing lanes and the assignments that
bind a running job to a node.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING, Optional

if TYPE_CHECKING:
    from lane_broker.node import ExecutionNode


class JobStatus(Enum):
    """Lifecycle states of a job."""

    PENDING = "pending"
    RUNNING = "running"
    FINISHED = "finished"
    STUCK = "stuck"
    CANCELLED = "cancelled"

    @property
    def is_terminal(self) -> bool:
        return self in (JobStatus.FINISHED, JobStatus.STUCK, JobStatus.CANCELLED)


_TRANSITIONS = {
    JobStatus.PENDING: (JobStatus.RUNNING, JobStatus.STUCK, JobStatus.CANCELLED),
    JobStatus.RUNNING: (JobStatus.FINISHED,),
}


@dataclass(frozen=True)
class ResourceLane:
    """A single processing lane with a fixed rate in work units per second."""

    index: int
    rate: float = 1000.0

    def __post_init__(self) -> None:
        if self.rate <= 0:
            raise ValueError(f"Lane rate must be positive, got {self.rate}")


@dataclass(frozen=True)
class Footprint:
    """Resource vector over every dimension a node constrains."""

    lanes: int = 0
    memory: int = 0
    bandwidth: int = 0
    storage: int = 0

    DIMENSIONS = ("lanes", "memory", "bandwidth", "storage")

    def __post_init__(self) -> None:
        for name in self.DIMENSIONS:
            if getattr(self, name) < 0:
                raise ValueError(f"Footprint {name} must not be negative")

    def __add__(self, other: Footprint) -> Footprint:
        return Footprint(
            lanes=self.lanes + other.lanes,
            memory=self.memory + other.memory,
            bandwidth=self.bandwidth + other.bandwidth,
            storage=self.storage + other.storage,
        )

    def __sub__(self, other: Footprint) -> Footprint:
        return Footprint(
            lanes=self.lanes - other.lanes,
            memory=self.memory - other.memory,
            bandwidth=self.bandwidth - other.bandwidth,
            storage=self.storage - other.storage,
        )

    def fits_within(self, other: Footprint) -> bool:
        """True if every dimension is at most the same dimension of other."""
        return (
            self.lanes <= other.lanes
            and self.memory <= other.memory
            and self.bandwidth <= other.bandwidth
            and self.storage <= other.storage
        )

    def dimensions_exceeding(self, other: Footprint) -> tuple[str, ...]:
        """Names of the dimensions where this footprint exceeds other."""
        return tuple(
            name
            for name in self.DIMENSIONS
            if getattr(self, name) > getattr(other, name)
        )

    def __str__(self) -> str:
        return (
            f"{self.lanes} lanes, {self.memory} mem, "
            f"{self.bandwidth} bw, {self.storage} storage"
        )


@dataclass(eq=False)
class Job:
    """
    A unit of work competing for node capacity.

    Attributes:
        id: Unique job identifier; submission is idempotent per id
        lanes: Number of lanes the job occupies while running
        length: Work units each lane must process
        memory: Memory held while running
        bandwidth: Bandwidth held while running
        storage: Storage held while running
        status: Current lifecycle state
    """

    id: str
    lanes: int
    length: float
    memory: int = 0
    bandwidth: int = 0
    storage: int = 0
    status: JobStatus = JobStatus.PENDING
    submitted_at: Optional[float] = None
    started_at: Optional[float] = None
    finished_at: Optional[float] = None

    def __post_init__(self) -> None:
        if self.lanes < 1:
            raise ValueError(f"Job {self.id} must require at least one lane")
        if self.length <= 0:
            raise ValueError(f"Job {self.id} must have a positive length")
        # Rejects negative resource amounts
        Footprint(memory=self.memory, bandwidth=self.bandwidth, storage=self.storage)

    @property
    def footprint(self) -> Footprint:
        return Footprint(
            lanes=self.lanes,
            memory=self.memory,
            bandwidth=self.bandwidth,
            storage=self.storage,
        )

    def transition(self, status: JobStatus) -> None:
        """Move to a new status, refusing transitions the lifecycle forbids."""
        if status not in _TRANSITIONS.get(self.status, ()):
            raise ValueError(
                f"Job {self.id} cannot go from {self.status.value} to {status.value}"
            )
        self.status = status

    def __str__(self) -> str:
        return f"Job({self.id}: {self.lanes} lanes, {self.status.value})"


@dataclass(eq=False)
class Assignment:
    """Binds a running job to a node and the lanes reserved for it."""

    job: Job
    node: ExecutionNode
    lanes: tuple[ResourceLane, ...]
    start_time: float
    end_time: Optional[float] = field(default=None)

    @property
    def duration(self) -> float:
        """Processing time, limited by the slowest reserved lane."""
        return self.job.length / min(lane.rate for lane in self.lanes)

    @property
    def finish_time(self) -> float:
        return self.start_time + self.duration

    def __str__(self) -> str:
        return (
            f"Assignment({self.job.id} -> node {self.node.node_id}, "
            f"lanes {[lane.index for lane in self.lanes]}, start {self.start_time:.2f})"
        )
