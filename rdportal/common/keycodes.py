"""Key and button name resolution for portal input notifications.

The portal takes evdev key/button codes for NotifyKeyboardKeycode and
NotifyPointerButton, and X11 keysyms for NotifyKeyboardKeysym.
"""

from __future__ import annotations

_SPECIAL_KEYSYM_BY_BASE: dict[str, str] = {
    "ENTER": "Return",
    "ESC": "Escape",
    "SPACE": "space",
    "TAB": "Tab",
    "BACKSPACE": "BackSpace",
    "MINUS": "minus",
    "EQUAL": "equal",
    "LEFTBRACE": "bracketleft",
    "RIGHTBRACE": "bracketright",
    "SEMICOLON": "semicolon",
    "APOSTROPHE": "apostrophe",
    "GRAVE": "grave",
    "BACKSLASH": "backslash",
    "COMMA": "comma",
    "DOT": "period",
    "SLASH": "slash",
    "LEFTSHIFT": "Shift_L",
    "RIGHTSHIFT": "Shift_R",
    "LEFTCTRL": "Control_L",
    "RIGHTCTRL": "Control_R",
    "LEFTALT": "Alt_L",
    "RIGHTALT": "Alt_R",
    "LEFTMETA": "Super_L",
    "RIGHTMETA": "Super_R",
    "CAPSLOCK": "Caps_Lock",
    "DELETE": "Delete",
    "INSERT": "Insert",
    "HOME": "Home",
    "END": "End",
    "PAGEUP": "Page_Up",
    "PAGEDOWN": "Page_Down",
    "UP": "Up",
    "DOWN": "Down",
    "LEFT": "Left",
    "RIGHT": "Right",
    "PRINT": "Print",
    "PAUSE": "Pause",
}


def keysymNameFromKeyBase_get(base: str) -> str | None:
    """
    Map an evdev KEY_* base token to an X11 keysym name.

    Args:
        base: Key name without KEY_ prefix.

    Returns:
        X11 keysym name or None when unsupported.
    """
    if base in _SPECIAL_KEYSYM_BY_BASE:
        return _SPECIAL_KEYSYM_BY_BASE[base]
    if len(base) == 1 and base.isalpha():
        return base.lower()
    if base.isdigit():
        return base
    if base.startswith("F") and base[1:].isdigit():
        return base
    return None


def codeName_normalize(name: str, prefix: str) -> str:
    """
    Normalize a user-supplied key/button name.

    "enter" becomes "KEY_ENTER" for prefix "KEY_", "left" becomes "BTN_LEFT"
    for prefix "BTN_".
    """
    token = name.strip().upper()
    if token.startswith("KEY_") or token.startswith("BTN_"):
        return token
    return f"{prefix}{token}"


def evdevCode_get(name: str, prefix: str = "KEY_") -> int:
    """
    Resolve an evdev key or button code by name.

    Args:
        name: Name such as "KEY_ENTER", "enter" or "BTN_LEFT".
        prefix: Prefix applied when the name has none.

    Returns:
        evdev code.

    Raises:
        ValueError: If the name is not a known evdev code.
    """
    from evdev import ecodes

    code_name = codeName_normalize(name, prefix)
    code = ecodes.ecodes.get(code_name)
    if not isinstance(code, int):
        raise ValueError(f"Unknown evdev code name '{name}'")
    return code


def keysymFromName_get(name: str) -> int:
    """
    Resolve an X11 keysym by keysym name ("Return") or evdev name ("KEY_ENTER").

    Raises:
        ValueError: If no keysym matches.
    """
    from Xlib import XK

    keysym: int = XK.string_to_keysym(name)
    if keysym == 0:
        base = codeName_normalize(name, "KEY_")[4:]
        keysym_name = keysymNameFromKeyBase_get(base)
        if keysym_name is not None:
            keysym = XK.string_to_keysym(keysym_name)
    if keysym == 0:
        raise ValueError(f"Unknown keysym name '{name}'")
    return keysym
