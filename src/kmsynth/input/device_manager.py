"""
Controller Device Manager

Hot-plug discovery of controller units and one blocking reader thread per
attached unit. Each unit is identified by its physical path; its channel is
its rank among the currently attached paths, so it can change whenever a
unit is added or removed.
"""

import bisect
import threading
import logging
from typing import Dict, List, Optional

try:
    import evdev
except ImportError:
    evdev = None

from ..errors import ErrorHandler, ErrorSeverity, InvalidInputCodeError
from .codes import edge_from_event
from .stream import EventStream, StreamProducer

log = logging.getLogger(__name__)

DEFAULT_DEVICE_NAME = "KONAMI USB Multipurpose Controller"
DEFAULT_KEY_COUNT = 34
DEFAULT_SCAN_INTERVAL = 3.0


class ChannelRegistry:
    """Sorted set of attached device paths; a path's rank is its channel

    One plain lock serves readers and writers alike (the standard library has
    no reader/writer lock); every critical section is a bisect on a short list.
    """

    def __init__(self):
        self._paths: List[str] = []
        self._lock = threading.Lock()

    def add(self, path: str) -> bool:
        with self._lock:
            i = bisect.bisect_left(self._paths, path)
            if i < len(self._paths) and self._paths[i] == path:
                return False
            self._paths.insert(i, path)
            return True

    def remove(self, path: str) -> bool:
        with self._lock:
            i = bisect.bisect_left(self._paths, path)
            if i < len(self._paths) and self._paths[i] == path:
                del self._paths[i]
                return True
            return False

    def channel_of(self, path: str) -> Optional[int]:
        """Current channel of a path, or None if it is not attached"""
        with self._lock:
            i = bisect.bisect_left(self._paths, path)
            if i < len(self._paths) and self._paths[i] == path:
                return i
            return None

    def paths(self) -> List[str]:
        with self._lock:
            return list(self._paths)

    def __contains__(self, path: str) -> bool:
        return self.channel_of(path) is not None

    def __len__(self) -> int:
        with self._lock:
            return len(self._paths)


class ControllerDeviceManager:
    """Discovers controllers and funnels their edges into one event stream"""

    def __init__(self, stream: EventStream, registry: Optional[ChannelRegistry] = None,
                 device_name: str = DEFAULT_DEVICE_NAME,
                 key_count: int = DEFAULT_KEY_COUNT,
                 scan_interval: float = DEFAULT_SCAN_INTERVAL,
                 error_handler: Optional[ErrorHandler] = None):
        self.stream = stream
        self.registry = registry or ChannelRegistry()
        self.device_name = device_name
        self.key_count = key_count
        self.scan_interval = scan_interval
        self.error_handler = error_handler or ErrorHandler()

        # Threading
        self.hotplug_thread: Optional[threading.Thread] = None
        self.reader_threads: Dict[str, threading.Thread] = {}
        self.shutdown_event = threading.Event()
        self._producer: Optional[StreamProducer] = None
        self._metrics_lock = threading.Lock()

        # Metrics
        self.metrics = {
            'devices_found': 0,
            'devices_connected': 0,
            'devices_lost': 0,
            'edges_forwarded': 0,
            'scan_errors': 0,
        }

        if evdev is None:
            log.error("evdev module not available - controller discovery disabled")

    def is_controller(self, device) -> bool:
        """Match by advertised name and number of supported key codes"""
        if device.name != self.device_name:
            return False
        keys = device.capabilities().get(evdev.ecodes.EV_KEY, [])
        return len(keys) == self.key_count

    @staticmethod
    def device_path(device) -> str:
        return device.phys or device.path

    def scan(self) -> int:
        """
        Run one discovery pass

        Returns:
            Number of newly attached controllers
        """
        if evdev is None:
            return 0

        attached = 0
        for path in evdev.list_devices():
            try:
                device = evdev.InputDevice(path)
            except OSError as e:
                log.debug(f"Could not open {path}: {e}")
                continue

            try:
                matched = self.is_controller(device)
            except OSError as e:
                log.debug(f"Could not query {path}: {e}")
                matched = False
            if not matched:
                device.close()
                continue

            phys = self.device_path(device)
            if not self.registry.add(phys):
                # Already attached
                device.close()
                continue

            self._bump('devices_found')
            self._attach(device, phys)
            attached += 1
        return attached

    def _attach(self, device, phys: str):
        producer = self.stream.open_producer(name=phys)
        thread = threading.Thread(
            target=self._read_device,
            args=(device, phys, producer),
            daemon=True,
            name=f"ControllerReader[{phys}]"
        )
        self.reader_threads[phys] = thread
        thread.start()
        self._bump('devices_connected')
        log.info(f"✓ Attached controller {phys} ({device.path}), "
                 f"channel {self.registry.channel_of(phys)}")

    def _read_device(self, device, phys: str, producer: StreamProducer):
        """Blocking read loop for one controller; ends when the device goes away"""
        try:
            for event in device.read_loop():
                if event.type != evdev.ecodes.EV_KEY:
                    continue
                edge = edge_from_event(event.code, event.value)
                if edge is None:
                    continue
                channel = self.registry.channel_of(phys)
                if channel is None:
                    break
                producer.send(channel, edge)
                self._bump('edges_forwarded')
        except OSError as e:
            self.error_handler.handle_error(e, 'device_read', ErrorSeverity.LOW,
                                            {'device': phys})
        except InvalidInputCodeError as e:
            self.error_handler.handle_error(e, 'input_decode', ErrorSeverity.CRITICAL,
                                            {'device': phys})
            producer.fail(e)
        finally:
            self.registry.remove(phys)
            self.reader_threads.pop(phys, None)
            self._bump('devices_lost')
            try:
                device.close()
            except OSError as e:
                log.debug(f"Error closing {phys}: {e}")
            producer.close()
            log.info(f"Detached controller {phys}")

    def start_hotplug_monitoring(self) -> bool:
        """
        Start the periodic discovery thread

        Returns:
            True if monitoring is running
        """
        if evdev is None:
            log.warning("Hot-plug monitoring not available")
            return False

        if self.hotplug_thread and self.hotplug_thread.is_alive():
            log.warning("Hot-plug monitoring already running")
            return True

        self.shutdown_event.clear()
        self._producer = self.stream.open_producer(name="discovery")
        self.hotplug_thread = threading.Thread(
            target=self._monitor_hotplug,
            daemon=True,
            name="ControllerHotPlugMonitor"
        )
        self.hotplug_thread.start()
        log.info("✓ Started controller discovery")
        return True

    def stop_monitoring(self):
        """Stop the discovery thread; attached readers keep running until unplugged"""
        self.shutdown_event.set()
        if self.hotplug_thread and self.hotplug_thread.is_alive():
            self.hotplug_thread.join(timeout=2.0)
            if self.hotplug_thread.is_alive():
                log.warning("Hot-plug thread did not stop cleanly")

    def _monitor_hotplug(self):
        log.debug("Starting hot-plug monitoring loop")
        try:
            while not self.shutdown_event.is_set():
                try:
                    self.scan()
                except OSError as e:
                    self._bump('scan_errors')
                    self.error_handler.handle_error(e, 'device_scan', ErrorSeverity.MEDIUM)
                self.shutdown_event.wait(self.scan_interval)
        finally:
            if self._producer is not None:
                self._producer.close()
                self._producer = None
            log.debug("Hot-plug monitoring loop ended")

    def _bump(self, name: str):
        with self._metrics_lock:
            self.metrics[name] += 1

    def get_metrics(self) -> Dict[str, int]:
        """Get device management metrics"""
        with self._metrics_lock:
            return {
                **self.metrics,
                'attached_devices': len(self.registry),
            }
