"""
lane-broker: Admission and backpressure control for a fixed pool of lanes.

Queues jobs in submission order and admits them onto execution nodes whenever
a node state change frees enough capacity, until every job has finished or
been flagged as stuck.
"""

__version__ = "0.1.0"

from lane_broker.models import Assignment, Footprint, Job, JobStatus, ResourceLane
from lane_broker.node import ExecutionNode
from lane_broker.placement import BestFit, Decision, FirstFit, WorstFit, decide
from lane_broker.channel import NotificationChannel
from lane_broker.broker import AdmissionBroker
from lane_broker.errors import (
    BrokerError,
    CapacityError,
    DoubleReleaseError,
    StarvationFault,
)
from lane_broker.config import Config, load_config

__all__ = [
    "Assignment",
    "Footprint",
    "Job",
    "JobStatus",
    "ResourceLane",
    "ExecutionNode",
    "BestFit",
    "Decision",
    "FirstFit",
    "WorstFit",
    "decide",
    "NotificationChannel",
    "AdmissionBroker",
    "BrokerError",
    "CapacityError",
    "DoubleReleaseError",
    "StarvationFault",
    "Config",
    "load_config",
]
