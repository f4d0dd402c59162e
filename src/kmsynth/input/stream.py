"""
Event Stream

Multi-producer, single-consumer queue of (channel, edge) pairs. Arrival
order at the queue is the only ordering the consumer relies on.
"""

import queue
import threading
import logging
from typing import Optional, Tuple

from ..errors import StreamClosedError
from .codes import Edge

log = logging.getLogger(__name__)

_CLOSED = object()


class _Failure:
    __slots__ = ('error',)

    def __init__(self, error: BaseException):
        self.error = error


class StreamProducer:
    """Handle held by one producer thread"""

    def __init__(self, stream: 'EventStream', name: str):
        self._stream = stream
        self.name = name
        self.closed = False

    def send(self, channel: int, edge: Edge):
        if self.closed:
            raise StreamClosedError(f"producer {self.name} is closed")
        self._stream._queue.put((channel, edge))

    def fail(self, error: BaseException):
        """Forward a fatal error to the consumer"""
        self._stream._queue.put(_Failure(error))

    def close(self):
        if not self.closed:
            self.closed = True
            self._stream._release_producer(self)


class EventStream:
    """Ordered stream of controller edges"""

    def __init__(self):
        self._queue: "queue.Queue" = queue.Queue()
        self._lock = threading.Lock()
        self._producers = 0
        self._ended = False

    def open_producer(self, name: str = "producer") -> StreamProducer:
        with self._lock:
            if self._ended:
                raise StreamClosedError("stream already ended")
            self._producers += 1
        return StreamProducer(self, name)

    def _release_producer(self, producer: StreamProducer):
        with self._lock:
            self._producers -= 1
            last = self._producers == 0
            if last:
                self._ended = True
        if last:
            log.debug(f"Last producer closed ({producer.name}), ending stream")
            self._queue.put(_CLOSED)

    @property
    def producer_count(self) -> int:
        with self._lock:
            return self._producers

    def receive(self, timeout: Optional[float] = None) -> Tuple[int, Edge]:
        """
        Block for the next (channel, edge)

        Raises:
            StreamClosedError: once every producer has closed
            queue.Empty: if a timeout was given and nothing arrived
            Any error forwarded by a producer through fail()
        """
        item = self._queue.get(timeout=timeout)
        if item is _CLOSED:
            # Keep the marker so later receives also see the end
            self._queue.put(_CLOSED)
            raise StreamClosedError("all event producers are gone")
        if isinstance(item, _Failure):
            raise item.error
        return item
