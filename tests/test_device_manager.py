"""
Controller discovery and reader tests

evdev is replaced by a mock so no hardware is needed.
"""

import unittest
from types import SimpleNamespace
from unittest.mock import Mock, patch

import pytest

from kmsynth.errors import InvalidInputCodeError, StreamClosedError
from kmsynth.input import device_manager
from kmsynth.input.codes import Edge, Input, SELECT
from kmsynth.input.device_manager import ChannelRegistry, ControllerDeviceManager
from kmsynth.input.stream import EventStream

EV_SYN = 0
EV_KEY = 1
CONTROLLER_NAME = "KONAMI USB Multipurpose Controller"


def fake_evdev(paths=()):
    module = Mock()
    module.ecodes = SimpleNamespace(EV_KEY=EV_KEY, EV_SYN=EV_SYN)
    module.list_devices.return_value = list(paths)
    return module


def key_event(code, value):
    return SimpleNamespace(type=EV_KEY, code=code, value=value)


def fake_device(path, phys, name=CONTROLLER_NAME, key_count=34, events=(), error=None):
    device = Mock()
    device.path = path
    device.phys = phys
    device.name = name
    device.capabilities.return_value = {EV_KEY: list(range(key_count))}

    def read_loop():
        for event in events:
            yield event
        if error is not None:
            raise error

    device.read_loop.side_effect = read_loop
    return device


class TestChannelRegistry(unittest.TestCase):
    """Test rank-based channel assignment"""

    def test_rank_follows_sorted_paths(self):
        registry = ChannelRegistry()
        self.assertTrue(registry.add("/a"))
        self.assertTrue(registry.add("/b"))
        self.assertEqual(registry.channel_of("/a"), 0)
        self.assertEqual(registry.channel_of("/b"), 1)

    def test_removal_shifts_channels(self):
        registry = ChannelRegistry()
        registry.add("/a")
        registry.add("/b")
        registry.remove("/a")
        self.assertEqual(registry.channel_of("/b"), 0)
        self.assertIsNone(registry.channel_of("/a"))

    def test_insertion_order_does_not_matter(self):
        registry = ChannelRegistry()
        registry.add("/c")
        registry.add("/a")
        registry.add("/b")
        self.assertEqual(registry.paths(), ["/a", "/b", "/c"])
        self.assertEqual(registry.channel_of("/c"), 2)

    def test_duplicate_add_and_missing_remove(self):
        registry = ChannelRegistry()
        self.assertTrue(registry.add("/a"))
        self.assertFalse(registry.add("/a"))
        self.assertFalse(registry.remove("/zzz"))
        self.assertEqual(len(registry), 1)
        self.assertIn("/a", registry)


class TestDeviceReader(unittest.TestCase):
    """Test the per-device read loop"""

    def setUp(self):
        self.stream = EventStream()
        self.manager = ControllerDeviceManager(self.stream)
        patcher = patch.object(device_manager, 'evdev', fake_evdev())
        patcher.start()
        self.addCleanup(patcher.stop)

    def test_forwards_edges_and_deregisters_on_unplug(self):
        device = fake_device("/dev/input/event3", "/b", events=[
            key_event(304, 1),
            SimpleNamespace(type=EV_SYN, code=0, value=0),
            key_event(745, 1),
            key_event(317, 1),
            key_event(304, 0),
        ], error=OSError(19, "No such device"))
        self.manager.registry.add("/b")
        producer = self.stream.open_producer("/b")

        self.manager._read_device(device, "/b", producer)

        self.assertEqual(self.stream.receive(timeout=1), (0, Edge.press(Input.key(0))))
        self.assertEqual(self.stream.receive(timeout=1), (0, Edge.press(SELECT)))
        self.assertEqual(self.stream.receive(timeout=1), (0, Edge.release(Input.key(0))))
        with self.assertRaises(StreamClosedError):
            self.stream.receive(timeout=1)
        self.assertNotIn("/b", self.manager.registry)
        device.close.assert_called_once()
        metrics = self.manager.get_metrics()
        self.assertEqual(metrics['edges_forwarded'], 3)
        self.assertEqual(metrics['devices_lost'], 1)
        self.assertEqual(self.manager.error_handler.get_error_statistics()['low_severity'], 1)

    def test_channel_recomputed_per_edge(self):
        """After /a goes away, the next edge from /b is on channel 0"""
        registry = self.manager.registry
        registry.add("/a")
        registry.add("/b")

        def events():
            yield key_event(305, 1)
            registry.remove("/a")
            yield key_event(305, 0)

        device = fake_device("/dev/input/event5", "/b")
        device.read_loop.side_effect = events
        producer = self.stream.open_producer("/b")
        self.stream.open_producer("keepalive")

        self.manager._read_device(device, "/b", producer)

        self.assertEqual(self.stream.receive(timeout=1), (1, Edge.press(Input.key(1))))
        self.assertEqual(self.stream.receive(timeout=1), (0, Edge.release(Input.key(1))))

    def test_invalid_code_is_forwarded_as_fatal(self):
        device = fake_device("/dev/input/event3", "/b", events=[key_event(900, 1)])
        self.manager.registry.add("/b")
        producer = self.stream.open_producer("/b")

        self.manager._read_device(device, "/b", producer)

        with self.assertRaises(InvalidInputCodeError):
            self.stream.receive(timeout=1)
        self.assertNotIn("/b", self.manager.registry)
        self.assertEqual(self.manager.error_handler.get_error_statistics()['critical_errors'], 1)


class TestDiscovery(unittest.TestCase):
    """Test device scanning and qualification"""

    def setUp(self):
        self.stream = EventStream()
        self.manager = ControllerDeviceManager(self.stream)
        self.manager._attach = Mock()

    def test_scan_attaches_only_matching_devices(self):
        controller = fake_device("/dev/input/event0", "usb-0000:00:14.0-1/input0")
        keyboard = fake_device("/dev/input/event1", "usb-kbd", name="AT Translated Keyboard")
        lookalike = fake_device("/dev/input/event2", "usb-2", key_count=12)
        evdev = fake_evdev(["/dev/input/event0", "/dev/input/event1",
                            "/dev/input/event2", "/dev/input/event9"])
        devices = {
            "/dev/input/event0": controller,
            "/dev/input/event1": keyboard,
            "/dev/input/event2": lookalike,
        }

        def open_device(path):
            if path not in devices:
                raise PermissionError(13, "Permission denied")
            return devices[path]

        evdev.InputDevice.side_effect = open_device

        with patch.object(device_manager, 'evdev', evdev):
            self.assertEqual(self.manager.scan(), 1)
            # Second pass finds nothing new
            self.assertEqual(self.manager.scan(), 0)

        self.assertIn("usb-0000:00:14.0-1/input0", self.manager.registry)
        self.manager._attach.assert_called_once_with(controller, "usb-0000:00:14.0-1/input0")
        keyboard.close.assert_called()
        lookalike.close.assert_called()
        self.assertEqual(self.manager.get_metrics()['devices_found'], 1)

    def test_scan_skips_device_that_fails_query(self):
        vanished = fake_device("/dev/input/event0", "usb-gone")
        vanished.capabilities.side_effect = OSError(19, "No such device")
        controller = fake_device("/dev/input/event1", "usb-0000:00:14.0-2/input0")
        evdev = fake_evdev(["/dev/input/event0", "/dev/input/event1"])
        evdev.InputDevice.side_effect = {
            "/dev/input/event0": vanished,
            "/dev/input/event1": controller,
        }.get

        with patch.object(device_manager, 'evdev', evdev):
            self.assertEqual(self.manager.scan(), 1)

        vanished.close.assert_called_once()
        self.assertNotIn("usb-gone", self.manager.registry)
        self.manager._attach.assert_called_once_with(controller, "usb-0000:00:14.0-2/input0")

    def test_phys_falls_back_to_path(self):
        device = fake_device("/dev/input/event4", "")
        self.assertEqual(ControllerDeviceManager.device_path(device), "/dev/input/event4")

    def test_attach_starts_reader(self):
        manager = ControllerDeviceManager(self.stream)
        device = fake_device("/dev/input/event0", "/a", error=OSError(19, "gone"))
        manager.registry.add("/a")
        with patch.object(device_manager, 'evdev', fake_evdev()):
            manager._attach(device, "/a")
            manager_thread = manager.reader_threads.get("/a")
            if manager_thread is not None:
                manager_thread.join(timeout=2)
        self.assertNotIn("/a", manager.registry)
        self.assertEqual(manager.get_metrics()['devices_connected'], 1)


def test_hotplug_monitoring_rescans_until_stopped():
    stream = EventStream()
    manager = ControllerDeviceManager(stream, scan_interval=0.01)
    evdev = fake_evdev([])
    with patch.object(device_manager, 'evdev', evdev):
        assert manager.start_hotplug_monitoring() is True
        assert stream.producer_count == 1
        manager.stop_monitoring()
    assert evdev.list_devices.called
    assert not manager.hotplug_thread.is_alive()
    with pytest.raises(StreamClosedError):
        stream.receive(timeout=1)


def test_monitoring_unavailable_without_evdev():
    manager = ControllerDeviceManager(EventStream())
    with patch.object(device_manager, 'evdev', None):
        assert manager.start_hotplug_monitoring() is False
        assert manager.scan() == 0
