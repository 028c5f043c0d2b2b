"""Typed options of the correlated RemoteDesktop calls.

Each call gets a fixed set of optional fields; keys the portal may add later
are not forwarded until they are named here.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from rdportal.bus.backend import OptionValue
from rdportal.common.types import CapabilitySet
from rdportal.request.token import HandleToken


@dataclass(frozen=True)
class CreateSessionOptions:
    """Options of RemoteDesktop.CreateSession"""
    handle_token: Optional[HandleToken] = None
    session_handle_token: Optional[HandleToken] = None

    def options_pack(self, handle_token: HandleToken, session_handle_token: HandleToken) -> dict[str, OptionValue]:
        return {
            "handle_token": ("s", handle_token.value),
            "session_handle_token": ("s", session_handle_token.value),
        }


@dataclass(frozen=True)
class SelectDevicesOptions:
    """Options of RemoteDesktop.SelectDevices; types None lets the broker offer all"""
    handle_token: Optional[HandleToken] = None
    types: Optional[CapabilitySet] = None

    def options_pack(self, handle_token: HandleToken) -> dict[str, OptionValue]:
        options: dict[str, OptionValue] = {"handle_token": ("s", handle_token.value)}
        if self.types is not None:
            options["types"] = ("u", self.types.to_bits())
        return options


@dataclass(frozen=True)
class StartOptions:
    """Options of RemoteDesktop.Start"""
    handle_token: Optional[HandleToken] = None

    def options_pack(self, handle_token: HandleToken) -> dict[str, OptionValue]:
        return {"handle_token": ("s", handle_token.value)}
