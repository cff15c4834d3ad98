"""
Execution nodes and their capacity accounting.

A node owns a fixed set of processing lanes plus memory, bandwidth and
storage. Free capacity is tracked as counters so fit checks are constant
time; reservations and releases update them under the node's lock.
"""

from __future__ import annotations

import threading
from typing import TYPE_CHECKING, Sequence, Union

from lane_broker.errors import CapacityError
from lane_broker.models import Footprint, ResourceLane

if TYPE_CHECKING:
    from lane_broker.models import Job


class ExecutionNode:
    """
    A worker node with a fixed pool of lanes and resource capacity.

    Attributes:
        node_id: Identifier used in logs and reports
        lanes: All lanes of the node, in index order
        capacity: Total footprint the node can host at once
    """

    def __init__(
        self,
        node_id: int,
        lanes: Union[int, Sequence[ResourceLane]] = 4,
        memory: int = 16384,
        bandwidth: int = 1000,
        storage: int = 10000,
        lane_rate: float = 1000.0,
    ):
        """
        Initialize an execution node.

        Args:
            node_id: Identifier of the node
            lanes: Lane count (homogeneous lanes at lane_rate) or explicit lanes
            memory: Total memory capacity
            bandwidth: Total bandwidth capacity
            storage: Total storage capacity
            lane_rate: Rate of each lane when lanes is a count
        """
        if isinstance(lanes, int):
            lanes = [ResourceLane(index=i, rate=lane_rate) for i in range(lanes)]
        if not lanes:
            raise ValueError("A node needs at least one lane")

        self.node_id = node_id
        self.lanes: tuple[ResourceLane, ...] = tuple(lanes)
        self.capacity = Footprint(
            lanes=len(self.lanes),
            memory=memory,
            bandwidth=bandwidth,
            storage=storage,
        )
        self.lock = threading.RLock()

        self._free = self.capacity
        self._free_lanes: list[ResourceLane] = list(self.lanes)
        self._active = 0

    @property
    def free(self) -> Footprint:
        return self._free

    @property
    def used(self) -> Footprint:
        return self.capacity - self._free

    @property
    def active_jobs(self) -> int:
        return self._active

    @property
    def utilization(self) -> float:
        """Fraction of lanes currently reserved (0.0 to 1.0)."""
        return self.used.lanes / self.capacity.lanes

    def can_fit(self, job: Job) -> bool:
        """Check whether the job fits into the currently free capacity."""
        return job.footprint.fits_within(self._free)

    def can_ever_fit(self, job: Job) -> bool:
        """Check whether the job fits into the node's total capacity."""
        return job.footprint.fits_within(self.capacity)

    def reserve(self, job: Job) -> tuple[ResourceLane, ...]:
        """
        Reserve capacity for a job.

        Takes the lowest-indexed free lanes. The fit check is repeated under
        the node lock, so a reservation can never over-commit the node.

        Returns:
            The lanes reserved for the job

        Raises:
            CapacityError: If the job does not fit into the free capacity
        """
        with self.lock:
            if not self.can_fit(job):
                raise CapacityError(
                    f"Node {self.node_id} cannot fit {job.id} "
                    f"(needs {job.footprint}, free {self._free})"
                )
            self._free_lanes.sort(key=lambda lane: lane.index)
            taken = tuple(self._free_lanes[: job.lanes])
            del self._free_lanes[: job.lanes]
            self._free = self._free - job.footprint
            self._active += 1
            return taken

    def unreserve(self, job: Job, lanes: Sequence[ResourceLane]) -> None:
        """
        Return a job's reserved capacity to the node.

        Raises:
            CapacityError: If a lane is not reserved or the free capacity
                would exceed the node's total capacity
        """
        with self.lock:
            restored = self._free + job.footprint
            if not restored.fits_within(self.capacity) or self._active == 0:
                raise CapacityError(
                    f"Node {self.node_id}: releasing {job.id} would exceed capacity"
                )
            if len(lanes) != job.lanes:
                raise CapacityError(
                    f"Node {self.node_id}: {job.id} returns {len(lanes)} lanes, "
                    f"reserved {job.lanes}"
                )
            for lane in lanes:
                if lane not in self.lanes or lane in self._free_lanes:
                    raise CapacityError(
                        f"Node {self.node_id}: lane {lane.index} is not reserved"
                    )
            self._free_lanes.extend(lanes)
            self._free = restored
            self._active -= 1

    def __str__(self) -> str:
        return (
            f"ExecutionNode({self.node_id}: "
            f"{self.utilization*100:.0f}% lanes, "
            f"{self._active} running, free {self._free})"
        )

    def __repr__(self) -> str:
        return (
            f"ExecutionNode(node_id={self.node_id}, lanes={self.capacity.lanes}, "
            f"memory={self.capacity.memory}, bandwidth={self.capacity.bandwidth}, "
            f"storage={self.capacity.storage})"
        )
