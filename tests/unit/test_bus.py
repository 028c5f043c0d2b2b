"""Unit tests for bus backend selection and Gio argument packing"""

import pytest

from rdportal.bus import portalBus_create
from rdportal.common.config import PortalConfig
from rdportal.common.errors import TransportError


class TestPortalBusCreate:
    """Test backend factory"""

    def test_unknown_backend(self):
        """Test unsupported backend names raise ValueError"""
        with pytest.raises(ValueError, match="Unsupported bus backend 'dbus-next'"):
            portalBus_create(PortalConfig(backend="dbus-next"))

    def test_gio_backend(self):
        """Test gio backend is created unconnected with configured names"""
        pytest.importorskip("gi")
        from rdportal.bus.gio_bus import GioPortalBus

        bus = portalBus_create(PortalConfig(backend="GIO", call_timeout_ms=1234))

        assert isinstance(bus, GioPortalBus)
        assert bus._call_timeout_ms == 1234
        with pytest.raises(TransportError, match="not established"):
            bus.uniqueName_get()


class TestGioArgumentPack:
    """Test option dict packing"""

    def test_option_dict_becomes_variants(self):
        """Test {key: (sig, value)} becomes {key: Variant}"""
        pytest.importorskip("gi")
        from rdportal.bus.gio_bus import GioPortalBus

        packed = GioPortalBus._argument_pack({"handle_token": ("s", "tok"), "types": ("u", 3)})

        assert packed["handle_token"].get_type_string() == "s"
        assert packed["handle_token"].unpack() == "tok"
        assert packed["types"].get_type_string() == "u"
        assert packed["types"].unpack() == 3

    def test_scalars_untouched(self):
        """Test non-dict arguments pass through"""
        pytest.importorskip("gi")
        from rdportal.bus.gio_bus import GioPortalBus

        assert GioPortalBus._argument_pack("/session/abc") == "/session/abc"
        assert GioPortalBus._argument_pack({}) == {}
