"""
Exception types for lane-broker.

Rejected admissions are ordinary control flow and have no exception type.
"""

from __future__ import annotations

from typing import Mapping

from lane_broker.placement import format_exceeded


class BrokerError(Exception):
    """Base class for lane-broker errors."""


class CapacityError(BrokerError):
    """Raised when a node's capacity accounting would be violated."""


class DoubleReleaseError(BrokerError):
    """
    Raised when a job is released without a matching active assignment.

    Attributes:
        job_id: Id of the job that was released
    """

    def __init__(self, job_id: str):
        self.job_id = job_id
        super().__init__(f"Job {job_id} has no active assignment to release")


class StarvationFault(BrokerError):
    """
    A job whose footprint exceeds every node's total capacity.

    The broker records these instead of raising them; hosts may raise them.

    Attributes:
        job_id: Id of the job that can never be admitted
        exceeded: Node id mapped to the dimensions that rule that node out
    """

    def __init__(self, job_id: str, exceeded: Mapping[int, tuple[str, ...]]):
        self.job_id = job_id
        self.exceeded = dict(exceeded)
        super().__init__(
            f"Job {job_id} exceeds total node capacity: {format_exceeded(self.exceeded)}"
        )
