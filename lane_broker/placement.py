"""
Placement decisions for lane-broker.

Determines whether a job can be admitted now, must wait for capacity, or can
never be admitted, and which node it goes to.
"""

from __future__ import annotations

from enum import Enum
from typing import TYPE_CHECKING, Mapping, Optional, Sequence

if TYPE_CHECKING:
    from lane_broker.models import Job
    from lane_broker.node import ExecutionNode


class Decision(Enum):
    """Possible admission decisions."""

    ADMIT = "admit"
    WAIT = "wait"
    STUCK = "stuck"


class PlacementPolicy:
    """Base class for choosing a node among those that fit a job."""

    name = "abstract"

    def select(
        self, job: Job, nodes: Sequence[ExecutionNode]
    ) -> Optional[ExecutionNode]:
        candidates = [node for node in nodes if node.can_fit(job)]
        if not candidates:
            return None
        return self.choose(job, candidates)

    def choose(
        self, job: Job, candidates: Sequence[ExecutionNode]
    ) -> ExecutionNode:
        """Pick one node from a non-empty list of nodes that fit the job."""
        raise NotImplementedError

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}()"


class FirstFit(PlacementPolicy):
    """Place the job on the first node that fits, in registration order."""

    name = "first-fit"

    def choose(self, job, candidates):
        return candidates[0]


class BestFit(PlacementPolicy):
    """
    Place the job where it leaves the least free capacity behind.

    Fewest free lanes after placement wins; ties go to the node with less
    free memory, then to registration order.
    """

    name = "best-fit"

    def choose(self, job, candidates):
        return min(
            candidates,
            key=lambda node: (
                node.free.lanes - job.lanes,
                node.free.memory - job.memory,
            ),
        )


class WorstFit(PlacementPolicy):
    """Place the job where it leaves the most free lanes behind."""

    name = "worst-fit"

    def choose(self, job, candidates):
        return max(
            candidates,
            key=lambda node: (
                node.free.lanes - job.lanes,
                node.free.memory - job.memory,
            ),
        )


POLICIES: dict[str, type[PlacementPolicy]] = {
    FirstFit.name: FirstFit,
    BestFit.name: BestFit,
    WorstFit.name: WorstFit,
}


def get_policy(name: str) -> PlacementPolicy:
    """
    Resolve a placement policy by name.

    Raises:
        ValueError: If no policy has that name
    """
    try:
        return POLICIES[name]()
    except KeyError:
        known = ", ".join(sorted(POLICIES))
        raise ValueError(f"Unknown placement policy {name!r} (known: {known})") from None


def decide(
    job: Job,
    nodes: Sequence[ExecutionNode],
    policy: PlacementPolicy,
) -> tuple[Decision, Optional[ExecutionNode], str]:
    """
    Decide whether to admit a job, keep it waiting, or flag it as stuck.

    The decision follows this priority:
    1. Starvation: no node could ever host the job, even when empty
    2. Backpressure: no node has enough free capacity right now
    3. Placement: the policy picks among the nodes that fit

    Args:
        job: Pending job to place
        nodes: Candidate nodes
        policy: Placement policy used when several nodes fit

    Returns:
        Tuple of (Decision, chosen node or None, reason_string)
    """
    if not any(node.can_ever_fit(job) for node in nodes):
        exceeded = exceeded_dimensions(job, nodes)
        return (
            Decision.STUCK,
            None,
            f"{job.id} exceeds total capacity of every node: {format_exceeded(exceeded)}",
        )

    node = policy.select(job, nodes)
    if node is None:
        return (
            Decision.WAIT,
            None,
            f"{job.id} needs {job.footprint}, no node has it free",
        )

    return Decision.ADMIT, node, f"{job.id} fits node {node.node_id} ({policy.name})"


def exceeded_dimensions(
    job: Job, nodes: Sequence[ExecutionNode]
) -> dict[int, tuple[str, ...]]:
    """
    Dimensions that rule each node out for a job, even with the node empty.

    Nodes whose total capacity could host the job are left out, so for a
    stuck job every node appears with at least one dimension.

    Returns:
        Mapping of node id to the dimensions the job's footprint exceeds
    """
    exceeded = {}
    for node in nodes:
        names = job.footprint.dimensions_exceeding(node.capacity)
        if names:
            exceeded[node.node_id] = names
    return exceeded


def format_exceeded(exceeded: Mapping[int, tuple[str, ...]]) -> str:
    """Render per-node dimensions as "node 0 (lanes), node 1 (memory)"."""
    return ", ".join(
        f"node {node_id} ({', '.join(names)})" for node_id, names in exceeded.items()
    )
