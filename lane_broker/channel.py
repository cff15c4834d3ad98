"""
Node state-change notifications for lane-broker.

An explicit observer list per node. Publishing delivers synchronously to the
subscribers of that node; deliveries for one node are serialized by a
per-node lock, deliveries for different nodes may interleave.
"""

from __future__ import annotations

import logging
import threading
from typing import TYPE_CHECKING, Callable, Optional

if TYPE_CHECKING:
    from lane_broker.node import ExecutionNode

logger = logging.getLogger(__name__)

Listener = Callable[["ExecutionNode"], None]


class NotificationChannel:
    """Delivers node state-change events to registered listeners."""

    def __init__(self):
        self._lock = threading.Lock()
        self._listeners: dict[Optional[int], list[Listener]] = {}
        self._delivery_locks: dict[int, threading.RLock] = {}
        self.published = 0

    def subscribe(
        self, node: ExecutionNode, callback: Listener
    ) -> Callable[[], None]:
        """
        Register a callback for state changes of one node.

        Returns:
            A function that removes the subscription
        """
        return self._add(node.node_id, callback)

    def subscribe_all(self, callback: Listener) -> Callable[[], None]:
        """Register a callback for state changes of every node."""
        return self._add(None, callback)

    def _add(self, key: Optional[int], callback: Listener) -> Callable[[], None]:
        with self._lock:
            self._listeners.setdefault(key, []).append(callback)

        def unsubscribe() -> None:
            with self._lock:
                listeners = self._listeners.get(key, [])
                if callback in listeners:
                    listeners.remove(callback)

        return unsubscribe

    def listeners_for(self, node: ExecutionNode) -> list[Listener]:
        with self._lock:
            return list(self._listeners.get(node.node_id, [])) + list(
                self._listeners.get(None, [])
            )

    def publish(self, node: ExecutionNode) -> int:
        """
        Deliver a state-change event for a node.

        Exceptions raised by listeners propagate to the publisher.

        Returns:
            Number of listeners notified
        """
        with self._lock:
            delivery_lock = self._delivery_locks.setdefault(
                node.node_id, threading.RLock()
            )
            self.published += 1

        listeners = self.listeners_for(node)
        logger.debug("State change on node %s -> %d listener(s)", node.node_id, len(listeners))
        with delivery_lock:
            for callback in listeners:
                callback(node)
        return len(listeners)
