"""Unit tests for InputChannel gating and argument passing"""

import pytest

from rdportal.common.errors import CapabilityDeniedError, InvalidStateError
from rdportal.common.types import Axis, CapabilitySet, DeviceType, KeyState

SESSION = "/session/abc"


@pytest.fixture
def active_session(fake_bus, session):
    """Session granted keyboard and pointer (Start answers devices=3)"""
    session.create()
    session.select_devices(CapabilitySet.all())
    session.start()
    return session


def _notify_calls(fake_bus):
    return [(c.method, c.args) for c in fake_bus.calls if c.method.startswith("Notify")]


class TestKeyboard:
    """Test keyboard emitters"""

    def test_keycode(self, fake_bus, active_session):
        """Test keycode press is sent with empty options"""
        active_session.input.notify_keyboard_keycode(30, KeyState.PRESSED)
        assert _notify_calls(fake_bus) == [("NotifyKeyboardKeycode", (SESSION, {}, 30, 1))]

    def test_keysym(self, fake_bus, active_session):
        """Test keysym release"""
        active_session.input.notify_keyboard_keysym(0xFF0D, KeyState.RELEASED)
        assert _notify_calls(fake_bus) == [("NotifyKeyboardKeysym", (SESSION, {}, 0xFF0D, 0))]

    def test_key_tap_presses_then_releases(self, fake_bus, active_session):
        """Test key_tap sends press followed by release"""
        active_session.input.key_tap(28)
        assert _notify_calls(fake_bus) == [
            ("NotifyKeyboardKeycode", (SESSION, {}, 28, 1)),
            ("NotifyKeyboardKeycode", (SESSION, {}, 28, 0)),
        ]

    def test_invalid_key_state(self, active_session):
        """Test key states other than pressed and released are rejected"""
        with pytest.raises(ValueError):
            active_session.input.notify_keyboard_keycode(30, 5)


class TestPointer:
    """Test pointer emitters"""

    def test_motion(self, fake_bus, active_session):
        """Test relative motion coerces to floats"""
        active_session.input.notify_pointer_motion(3, -4)
        assert _notify_calls(fake_bus) == [("NotifyPointerMotion", (SESSION, {}, 3.0, -4.0))]

    def test_motion_absolute(self, fake_bus, active_session):
        """Test absolute motion passes the stream through"""
        active_session.input.notify_pointer_motion_absolute(42, 100.5, 200.0)
        assert _notify_calls(fake_bus) == [
            ("NotifyPointerMotionAbsolute", (SESSION, {}, 42, 100.5, 200.0))
        ]

    def test_button_click(self, fake_bus, active_session):
        """Test click sends press then release of the button code"""
        active_session.input.button_click(0x110)
        assert _notify_calls(fake_bus) == [
            ("NotifyPointerButton", (SESSION, {}, 0x110, 1)),
            ("NotifyPointerButton", (SESSION, {}, 0x110, 0)),
        ]

    def test_axis(self, fake_bus, active_session):
        """Test smooth scroll"""
        active_session.input.notify_pointer_axis(0.0, 15.0)
        assert _notify_calls(fake_bus) == [("NotifyPointerAxis", (SESSION, {}, 0.0, 15.0))]

    def test_axis_discrete(self, fake_bus, active_session):
        """Test wheel clicks carry axis and steps"""
        active_session.input.notify_pointer_axis_discrete(Axis.HORIZONTAL, -2)
        assert _notify_calls(fake_bus) == [("NotifyPointerAxisDiscrete", (SESSION, {}, 1, -2))]

    def test_order_preserved(self, fake_bus, active_session):
        """Test events reach the bus in call order"""
        channel = active_session.input
        channel.notify_pointer_motion(1, 0)
        channel.notify_pointer_button(0x110, KeyState.PRESSED)
        channel.notify_pointer_motion(2, 0)
        channel.notify_pointer_button(0x110, KeyState.RELEASED)

        assert [method for method, _args in _notify_calls(fake_bus)] == [
            "NotifyPointerMotion",
            "NotifyPointerButton",
            "NotifyPointerMotion",
            "NotifyPointerButton",
        ]


class TestTouch:
    """Test touchscreen emitters, which need a touchscreen grant"""

    def test_touch_denied_without_grant(self, fake_bus, active_session):
        """Test touch events are rejected when only keyboard and pointer were granted"""
        with pytest.raises(CapabilityDeniedError) as exc_info:
            active_session.input.notify_touch_down(42, 0, 10.0, 10.0)
        assert exc_info.value.device is DeviceType.TOUCHSCREEN
        assert _notify_calls(fake_bus) == []

    def test_touch_sequence(self, fake_bus, session):
        """Test down, motion and up with a touchscreen grant"""
        fake_bus.responses["Start"] = (0, {"devices": 4})
        session.create()
        session.select_devices(CapabilitySet.of(DeviceType.TOUCHSCREEN))
        session.start()

        session.input.notify_touch_down(42, 0, 10.0, 20.0)
        session.input.notify_touch_motion(42, 0, 11.0, 21.0)
        session.input.notify_touch_up(0)

        assert _notify_calls(fake_bus) == [
            ("NotifyTouchDown", (SESSION, {}, 42, 0, 10.0, 20.0)),
            ("NotifyTouchMotion", (SESSION, {}, 42, 0, 11.0, 21.0)),
            ("NotifyTouchUp", (SESSION, {}, 0)),
        ]
        with pytest.raises(CapabilityDeniedError):
            session.input.notify_pointer_motion(1, 1)


class TestGating:
    """Test events outside an active session"""

    def test_before_start(self, fake_bus, session):
        """Test events before start raise InvalidStateError"""
        session.create()
        with pytest.raises(InvalidStateError):
            session.input.notify_keyboard_keycode(30, KeyState.PRESSED)
        assert _notify_calls(fake_bus) == []

    def test_after_close(self, fake_bus, active_session):
        """Test events after close raise InvalidStateError"""
        active_session.close()
        with pytest.raises(InvalidStateError):
            active_session.input.notify_pointer_motion(1, 1)
        assert _notify_calls(fake_bus) == []

    def test_dropped_events_logged(self, active_session, caplog):
        """Test rejected events are logged at debug level"""
        with pytest.raises(CapabilityDeniedError):
            active_session.input.notify_touch_up(3)
        assert "Dropped notify_touch_up" in caplog.text


EMITTERS = [
    ("notify_keyboard_keycode", DeviceType.KEYBOARD, (30, KeyState.PRESSED)),
    ("notify_keyboard_keysym", DeviceType.KEYBOARD, (0xFF0D, KeyState.PRESSED)),
    ("key_tap", DeviceType.KEYBOARD, (30,)),
    ("notify_pointer_motion", DeviceType.POINTER, (1.0, 2.0)),
    ("notify_pointer_motion_absolute", DeviceType.POINTER, (42, 10.0, 20.0)),
    ("notify_pointer_button", DeviceType.POINTER, (0x110, KeyState.PRESSED)),
    ("button_click", DeviceType.POINTER, (0x110,)),
    ("notify_pointer_axis", DeviceType.POINTER, (0.0, 1.0)),
    ("notify_pointer_axis_discrete", DeviceType.POINTER, (Axis.VERTICAL, 1)),
    ("notify_touch_down", DeviceType.TOUCHSCREEN, (42, 0, 1.0, 1.0)),
    ("notify_touch_motion", DeviceType.TOUCHSCREEN, (42, 0, 2.0, 2.0)),
    ("notify_touch_up", DeviceType.TOUCHSCREEN, (0,)),
]


class TestGrantMatrix:
    """Test every emitter against every possible grant"""

    @pytest.mark.parametrize("granted_bits", range(8))
    @pytest.mark.parametrize("emitter,device,args", EMITTERS, ids=[e[0] for e in EMITTERS])
    def test_emitter_gated_by_grant(self, fake_bus, session, granted_bits, emitter, device, args):
        """Test an emitter sends only when its device kind was granted"""
        fake_bus.responses["Start"] = (0, {"devices": granted_bits})
        session.create()
        session.select_devices(CapabilitySet.all())
        granted = session.start()
        assert granted == CapabilitySet.from_bits(granted_bits)

        emit = getattr(session.input, emitter)
        if device in granted:
            emit(*args)
            assert _notify_calls(fake_bus) != []
        else:
            with pytest.raises(CapabilityDeniedError) as exc_info:
                emit(*args)
            assert exc_info.value.device is device
            assert exc_info.value.granted == granted
            assert _notify_calls(fake_bus) == []
