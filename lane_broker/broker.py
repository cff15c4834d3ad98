"""
Admission broker for lane-broker.

Holds the FIFO queue of pending jobs and the active assignments, and
re-evaluates the queue whenever a node's load changes. Each evaluation pass
scans the queue in submission order and admits every job that fits somewhere;
jobs that do not fit stay queued without blocking the jobs behind them.
"""

from __future__ import annotations

import logging
import threading
import time
from collections import deque
from typing import Callable, Iterable, Optional, Sequence

from lane_broker.channel import NotificationChannel
from lane_broker.errors import DoubleReleaseError, StarvationFault
from lane_broker.models import Assignment, Job, JobStatus
from lane_broker.node import ExecutionNode
from lane_broker.placement import (
    BestFit,
    Decision,
    PlacementPolicy,
    decide,
    exceeded_dimensions,
)

logger = logging.getLogger(__name__)

AdmissionListener = Callable[[Assignment], None]

_ADMITTED = "admitted"
_CHANGED = "changed"


class AdmissionBroker:
    """
    Admits queued jobs onto execution nodes as capacity becomes free.

    The queue, the assignment table and node reservations are only changed
    under the broker lock. Listeners and channel subscribers are notified
    after the lock is released, so they may call back into the broker.

    Attributes:
        nodes: Nodes the broker places jobs on, in registration order
        policy: Placement policy used when several nodes fit a job
        channel: Channel carrying node state-change events
        peak_active: Highest number of concurrent assignments observed
    """

    def __init__(
        self,
        nodes: Sequence[ExecutionNode],
        policy: Optional[PlacementPolicy] = None,
        channel: Optional[NotificationChannel] = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        """
        Initialize the broker and subscribe it to every node.

        Args:
            nodes: Execution nodes to admit jobs onto
            policy: Placement policy (best fit by default)
            channel: Notification channel (a private one by default)
            clock: Returns the current time for job timestamps
        """
        if not nodes:
            raise ValueError("The broker needs at least one node")
        node_ids = [node.node_id for node in nodes]
        duplicates = sorted({nid for nid in node_ids if node_ids.count(nid) > 1})
        if duplicates:
            raise ValueError(f"Duplicate node ids: {duplicates}")

        self.nodes: tuple[ExecutionNode, ...] = tuple(nodes)
        self.policy = policy if policy is not None else BestFit()
        self.channel = channel if channel is not None else NotificationChannel()
        self.clock = clock
        self.peak_active = 0

        self._lock = threading.RLock()
        self._queue: list[Job] = []
        self._jobs: dict[str, Job] = {}
        self._assignments: dict[str, Assignment] = {}
        self._completed: list[Assignment] = []
        self._faults: dict[str, StarvationFault] = {}
        self._admission_listeners: list[AdmissionListener] = []
        self._outbox: deque = deque()
        self._pass_requested = False
        self._draining = False
        self._stats = {
            "submitted": 0,
            "duplicates": 0,
            "admitted": 0,
            "rejected": 0,
            "released": 0,
            "failed_release": 0,
            "stuck": 0,
            "withdrawn": 0,
            "passes": 0,
            "coalesced": 0,
        }

        for node in self.nodes:
            self.channel.subscribe(node, self.on_node_state_changed)

    def add_admission_listener(self, callback: AdmissionListener) -> None:
        """Register a callback invoked with every new assignment."""
        with self._lock:
            self._admission_listeners.append(callback)

    # -- Ingestion -----------------------------------------------------------

    def submit(self, jobs: Iterable[Job]) -> list[Job]:
        """
        Append jobs to the pending queue in submission order.

        Submission is idempotent per job id: an id the broker already knows
        is ignored. A job that exceeds the total capacity of every node is
        flagged stuck immediately and never queued.

        Submitting does not admit anything by itself; admission happens on
        the next state change. A release always publishes one, but when no
        change is coming (every node idle, or all running jobs already
        released) the host must call on_node_state_changed() after
        submitting, or the jobs stay queued.

        Returns:
            The jobs that were queued
        """
        queued = []
        with self._lock:
            now = self.clock()
            for job in jobs:
                known = self._jobs.get(job.id)
                if known is not None:
                    self._stats["duplicates"] += 1
                    logger.info(
                        "Ignoring duplicate submission of %s (%s)",
                        job.id,
                        known.status.value,
                    )
                    continue
                if job.status is not JobStatus.PENDING:
                    raise ValueError(
                        f"Job {job.id} is {job.status.value}, only pending jobs can be submitted"
                    )

                self._jobs[job.id] = job
                job.submitted_at = now
                self._stats["submitted"] += 1

                if not any(node.can_ever_fit(job) for node in self.nodes):
                    self._mark_stuck(job)
                    continue

                self._queue.append(job)
                queued.append(job)
                logger.debug("Queued %s at position %d", job.id, len(self._queue))
        return queued

    def withdraw(self, job_id: str) -> bool:
        """
        Cancel a job that has not been admitted yet.

        Returns:
            True if the job was pending and is now cancelled
        """
        with self._lock:
            job = self._jobs.get(job_id)
            if job is None or job.status is not JobStatus.PENDING:
                return False
            self._queue.remove(job)
            job.transition(JobStatus.CANCELLED)
            self._stats["withdrawn"] += 1
            logger.info("Withdrew %s from the queue", job_id)
            return True

    # -- Re-evaluation -------------------------------------------------------

    def on_node_state_changed(self, node: Optional[ExecutionNode] = None) -> None:
        """
        Re-evaluate the pending queue after a node's load changed.

        A call that arrives while a pass is running, from a nested
        notification or from another thread, is folded into one more pass of
        the running loop instead of starting its own.
        """
        with self._lock:
            self._pass_requested = True
            if self._draining:
                self._stats["coalesced"] += 1
                return
            self._draining = True

        try:
            while True:
                with self._lock:
                    if not self._pass_requested:
                        self._draining = False
                        return
                    self._pass_requested = False
                    self._evaluate_pending()
                self._flush_notifications()
        except BaseException:
            with self._lock:
                self._draining = False
            raise

    def _evaluate_pending(self) -> None:
        self._stats["passes"] += 1
        for job in list(self._queue):
            decision, node, reason = decide(job, self.nodes, self.policy)
            if decision is Decision.ADMIT:
                self._admit_locked(job, node)
            elif decision is Decision.STUCK:
                self._queue.remove(job)
                self._mark_stuck(job)
            else:
                self._stats["rejected"] += 1
                logger.debug("Waiting: %s", reason)

    # -- Admission and release -----------------------------------------------

    def admit(self, job: Job, node: ExecutionNode) -> bool:
        """
        Admit a pending job onto a specific node if it fits right now.

        The fit check and the reservation happen in one step under the
        broker and node locks.

        Returns:
            True if the job is now running, False if it was rejected

        Raises:
            ValueError: If the job is not pending in this broker or the node
                does not belong to it
        """
        with self._lock:
            if self._jobs.get(job.id) is not job or job.status is not JobStatus.PENDING:
                raise ValueError(f"Job {job.id} is not pending in this broker")
            if node not in self.nodes:
                raise ValueError(f"Node {node.node_id} is not managed by this broker")
            assignment = self._admit_locked(job, node)
        self._flush_notifications()
        return assignment is not None

    def _admit_locked(self, job: Job, node: ExecutionNode) -> Optional[Assignment]:
        with node.lock:
            if not node.can_fit(job):
                self._stats["rejected"] += 1
                logger.debug(
                    "Rejected %s on node %s: needs %s, free %s",
                    job.id,
                    node.node_id,
                    job.footprint,
                    node.free,
                )
                return None
            lanes = node.reserve(job)

        now = self.clock()
        job.transition(JobStatus.RUNNING)
        job.started_at = now
        self._queue.remove(job)

        assignment = Assignment(job=job, node=node, lanes=lanes, start_time=now)
        self._assignments[job.id] = assignment
        self.peak_active = max(self.peak_active, len(self._assignments))
        self._stats["admitted"] += 1
        logger.info(
            "Admitted %s onto node %s lanes %s",
            job.id,
            node.node_id,
            [lane.index for lane in lanes],
        )

        self._outbox.append((_ADMITTED, assignment))
        self._outbox.append((_CHANGED, node))
        return assignment

    def release(self, assignment: Assignment) -> None:
        """
        Finish a running job and return its capacity to the node.

        Publishes a state change for the node, which re-evaluates the queue.

        Raises:
            DoubleReleaseError: If the assignment is not active
        """
        job = assignment.job
        with self._lock:
            if self._assignments.get(job.id) is not assignment:
                self._stats["failed_release"] += 1
                logger.error("Release of %s without an active assignment", job.id)
                raise DoubleReleaseError(job.id)

            del self._assignments[job.id]
            assignment.node.unreserve(job, assignment.lanes)

            now = self.clock()
            job.transition(JobStatus.FINISHED)
            job.finished_at = now
            assignment.end_time = now
            self._completed.append(assignment)
            self._stats["released"] += 1
            logger.info("Released %s from node %s", job.id, assignment.node.node_id)

            self._outbox.append((_CHANGED, assignment.node))
        self._flush_notifications()

    def _mark_stuck(self, job: Job) -> None:
        fault = StarvationFault(job.id, exceeded_dimensions(job, self.nodes))
        job.transition(JobStatus.STUCK)
        self._faults[job.id] = fault
        self._stats["stuck"] += 1
        logger.warning("Starvation fault: %s", fault)

    def _flush_notifications(self) -> None:
        while True:
            with self._lock:
                if not self._outbox:
                    return
                kind, item = self._outbox.popleft()
                listeners = list(self._admission_listeners)

            if kind == _ADMITTED:
                for callback in listeners:
                    callback(item)
            else:
                self.channel.publish(item)

    # -- Queries -------------------------------------------------------------

    def get(self, job_id: str) -> Optional[Job]:
        with self._lock:
            return self._jobs.get(job_id)

    def pending_jobs(self) -> list[Job]:
        with self._lock:
            return list(self._queue)

    def active_assignments(self) -> list[Assignment]:
        with self._lock:
            return list(self._assignments.values())

    def completed_assignments(self) -> list[Assignment]:
        """Assignments of finished jobs, in completion order."""
        with self._lock:
            return list(self._completed)

    def finished_jobs(self) -> list[Job]:
        """All finished jobs, in completion order."""
        with self._lock:
            return [assignment.job for assignment in self._completed]

    def stuck_jobs(self) -> list[Job]:
        with self._lock:
            return [self._jobs[job_id] for job_id in self._faults]

    def faults(self) -> list[StarvationFault]:
        with self._lock:
            return list(self._faults.values())

    @property
    def is_drained(self) -> bool:
        """True when nothing is queued and nothing is running."""
        with self._lock:
            return not self._queue and not self._assignments

    def get_stats(self) -> dict[str, int]:
        """Return broker counters."""
        with self._lock:
            return self._stats.copy()

    def __str__(self) -> str:
        with self._lock:
            return (
                f"AdmissionBroker({len(self.nodes)} node(s), "
                f"{len(self._queue)} pending, {len(self._assignments)} running, "
                f"{len(self._completed)} finished, {len(self._faults)} stuck)"
            )
