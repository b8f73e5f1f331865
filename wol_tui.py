#!/usr/bin/env python3
"""
WoL-TUI - Wake-on-LAN machine list for the terminal
Keep a list of named machines, add or remove entries, and cast a Wake-on-LAN
magic packet at the highlighted one without leaving the keyboard.
"""

__version__ = "1.0.0"
__author__ = "Cardigans of the Galaxy"
__description__ = "Wake-on-LAN machine list with a keyboard-driven terminal interface"

# Standard library imports
import ipaddress
import json
import logging
import logging.handlers
import os
import re
import socket
import sys
import time
from dataclasses import dataclass, field, replace
from enum import Enum, auto
from pathlib import Path
from typing import List, Optional

# Third-party imports
import netifaces

# Terminal UI detection (curses ships separately on Windows)
CURSES_AVAILABLE = False
try:
    import curses
    CURSES_AVAILABLE = True
except ImportError:
    CURSES_AVAILABLE = False

logger = logging.getLogger(__name__)

DATA_DIR_NAME = ".wol_caster"
MACHINES_FILENAME = "machines.json"
SETTINGS_FILENAME = "settings.json"
LOG_FILENAME = "wol_tui.log"

# How long the "packet sent" popup stays up before returning to the list
POPUP_SECONDS = 1.0

MAC_PATTERN = re.compile(r"[0-9A-Fa-f]{2}([:-])(?:[0-9A-Fa-f]{2}\1){4}[0-9A-Fa-f]{2}")


# =============================================================================
# Errors
# =============================================================================

class WolError(Exception):
    """Base class for all WoL-TUI errors."""


class OutOfRange(WolError, IndexError):
    """A machine index does not point at an existing row."""


class PersistenceError(WolError):
    """The machine list could not be read from or written to disk."""


class ConfigNotFound(PersistenceError):
    """The machine file does not exist yet."""


class ConfigParseError(PersistenceError):
    """The machine file exists but does not hold a machine list."""


class DispatchError(WolError):
    """A magic packet could not be built or sent."""


class HomeDirError(WolError):
    """The home directory (and therefore the data directory) is unknown."""


# =============================================================================
# Machines and validation
# =============================================================================

def is_valid_mac(candidate):
    """Return True if candidate is a MAC address like AA:BB:CC:DD:EE:FF or aa-bb-cc-dd-ee-ff."""
    if not isinstance(candidate, str):
        return False
    return MAC_PATTERN.fullmatch(candidate) is not None


@dataclass(frozen=True)
class Machine:
    """A named machine that can be woken up."""
    name: str
    mac: str


class MachineList:
    """
    Ordered machine list with a highlighted row.

    The cursor is None exactly when the list is empty. Every mutation is
    written through to ``store`` before returning; if that write fails the
    list and cursor are put back the way they were and the error propagates.
    """

    def __init__(self, items=(), store=None):
        self.items = list(items)
        self.cursor = 0 if self.items else None
        self.store = store

    def __len__(self):
        return len(self.items)

    def list(self):
        """Return the machines in insertion order."""
        return tuple(self.items)

    def selected_machine(self):
        """Return the highlighted machine, or None."""
        if self.cursor is None:
            return None
        return self.items[self.cursor]

    def next(self):
        """Move the highlight down one row, stopping at the last row."""
        if not self.items:
            return
        if self.cursor is None:
            self.cursor = 0
        else:
            self.cursor = min(self.cursor + 1, len(self.items) - 1)

    def previous(self):
        """Move the highlight up one row, stopping at the first row."""
        if not self.items:
            return
        if self.cursor is None:
            self.cursor = 0
        else:
            self.cursor = max(self.cursor - 1, 0)

    def add(self, machine):
        """Append a machine and persist the list."""
        cursor = 0 if self.cursor is None else self.cursor
        self._commit(self.items + [machine], cursor)
        logger.info("Added machine %r (%s)", machine.name, machine.mac)

    def delete_at(self, index):
        """Remove and return the machine at index, then persist the list."""
        if isinstance(index, bool) or not isinstance(index, int) or not 0 <= index < len(self.items):
            raise OutOfRange(f"no machine at index {index!r} (have {len(self.items)})")

        removed = self.items[index]
        items = self.items[:index] + self.items[index + 1:]

        if not items:
            cursor = None
        elif self.cursor is None or self.cursor == index:
            cursor = max(index - 1, 0)
        elif self.cursor > index:
            cursor = self.cursor - 1
        else:
            cursor = self.cursor

        self._commit(items, cursor)
        logger.info("Deleted machine %r (%s)", removed.name, removed.mac)
        return removed

    def _commit(self, items, cursor):
        previous = (self.items, self.cursor)
        self.items, self.cursor = items, cursor
        if self.store is None:
            return
        try:
            self.store.save(self.list())
        except PersistenceError:
            self.items, self.cursor = previous
            raise


# =============================================================================
# Session state machine
# =============================================================================

class Mode(Enum):
    """What the session is currently doing."""
    MAIN = auto()
    NAME_INPUT = auto()
    MAC_INPUT = auto()
    CONFIRM_ADD = auto()
    CONFIRM_DELETE = auto()
    SEND_POP = auto()
    EXITED = auto()


class Event(Enum):
    """Requests that can move the session from one mode to another."""
    ADD_REQUESTED = auto()
    DELETE_REQUESTED = auto()
    SEND_REQUESTED = auto()
    EXIT_REQUESTED = auto()
    COMMITTED = auto()
    CANCELLED = auto()
    CONFIRMED = auto()
    DECLINED = auto()
    TIMER_ELAPSED = auto()


TRANSITIONS = {
    (Mode.MAIN, Event.ADD_REQUESTED): Mode.NAME_INPUT,
    (Mode.MAIN, Event.DELETE_REQUESTED): Mode.CONFIRM_DELETE,
    (Mode.MAIN, Event.SEND_REQUESTED): Mode.SEND_POP,
    (Mode.MAIN, Event.EXIT_REQUESTED): Mode.EXITED,
    (Mode.NAME_INPUT, Event.COMMITTED): Mode.MAC_INPUT,
    (Mode.NAME_INPUT, Event.CANCELLED): Mode.MAIN,
    (Mode.MAC_INPUT, Event.COMMITTED): Mode.CONFIRM_ADD,
    (Mode.MAC_INPUT, Event.CANCELLED): Mode.MAIN,
    (Mode.CONFIRM_ADD, Event.CONFIRMED): Mode.MAIN,
    (Mode.CONFIRM_ADD, Event.DECLINED): Mode.MAIN,
    (Mode.CONFIRM_DELETE, Event.CONFIRMED): Mode.MAIN,
    (Mode.CONFIRM_DELETE, Event.DECLINED): Mode.MAIN,
    (Mode.SEND_POP, Event.TIMER_ELAPSED): Mode.MAIN,
}


def next_mode(mode, event):
    """Return the mode that event leads to from mode, or None if it leads nowhere."""
    return TRANSITIONS.get((mode, event))


class LineBuffer:
    """Single line of text being typed, with an insertion point."""

    def __init__(self, text=""):
        self.text = text
        self.pos = len(text)

    def __repr__(self):
        return f"LineBuffer({self.text!r}, pos={self.pos})"

    def insert(self, char):
        self.text = self.text[:self.pos] + char + self.text[self.pos:]
        self.pos += len(char)

    def backspace(self):
        if self.pos == 0:
            return
        self.text = self.text[:self.pos - 1] + self.text[self.pos:]
        self.pos -= 1

    def delete(self):
        self.text = self.text[:self.pos] + self.text[self.pos + 1:]

    def left(self):
        self.pos = max(self.pos - 1, 0)

    def right(self):
        self.pos = min(self.pos + 1, len(self.text))

    def home(self):
        self.pos = 0

    def end(self):
        self.pos = len(self.text)

    def clear(self):
        self.text = ""
        self.pos = 0


class Session:
    """
    One interactive session: the machine list, the current mode and the
    transient data that goes with it.

    ``apply()`` is the only way the mode changes. It looks the transition up
    in ``TRANSITIONS``, checks the guard for that transition (if any), runs
    its side effect (if any) and only then switches mode. Events with no
    transition, or whose guard fails, change nothing.

    Args:
        machines: MachineList to browse and edit.
        sender: object with ``send(mac)`` that raises DispatchError on failure.
        clock: zero-argument callable returning seconds (monotonic).
    """

    def __init__(self, machines, sender, clock=time.monotonic):
        self.machines = machines
        self.sender = sender
        self.clock = clock
        self.mode = Mode.MAIN
        self.buffer = LineBuffer()
        self.pending = None
        self.popup_time = None
        self.status = ""

        self._guards = {
            (Mode.MAIN, Event.DELETE_REQUESTED): self._has_selection,
            (Mode.MAIN, Event.SEND_REQUESTED): self._has_selection,
            (Mode.MAC_INPUT, Event.COMMITTED): self._buffer_is_mac,
            (Mode.SEND_POP, Event.TIMER_ELAPSED): self._popup_expired,
        }
        self._effects = {
            (Mode.MAIN, Event.ADD_REQUESTED): self._start_add,
            (Mode.MAIN, Event.DELETE_REQUESTED): self._clear_status,
            (Mode.MAIN, Event.SEND_REQUESTED): self._send,
            (Mode.NAME_INPUT, Event.COMMITTED): self._commit_name,
            (Mode.NAME_INPUT, Event.CANCELLED): self._cancel_input,
            (Mode.MAC_INPUT, Event.COMMITTED): self._commit_mac,
            (Mode.MAC_INPUT, Event.CANCELLED): self._cancel_input,
            (Mode.CONFIRM_ADD, Event.CONFIRMED): self._confirm_add,
            (Mode.CONFIRM_ADD, Event.DECLINED): self._discard_pending,
            (Mode.CONFIRM_DELETE, Event.CONFIRMED): self._confirm_delete,
            (Mode.SEND_POP, Event.TIMER_ELAPSED): self._close_popup,
        }

    @property
    def running(self):
        return self.mode is not Mode.EXITED

    def apply(self, event):
        """Apply event; return True if the session changed mode."""
        source = self.mode
        target = next_mode(source, event)
        if target is None:
            return False

        guard = self._guards.get((source, event))
        if guard is not None and not guard():
            logger.debug("%s blocked in %s", event.name, source.name)
            return False

        effect = self._effects.get((source, event))
        if effect is not None and effect() is False:
            return False

        self.mode = target
        logger.debug("%s: %s -> %s", event.name, source.name, target.name)
        return True

    def tick(self):
        """Close the send popup once it has been up long enough."""
        if self.mode is Mode.SEND_POP:
            return self.apply(Event.TIMER_ELAPSED)
        return False

    # Guards

    def _has_selection(self):
        return self.machines.cursor is not None

    def _buffer_is_mac(self):
        return is_valid_mac(self.buffer.text)

    def _popup_expired(self):
        return self.popup_time is not None and self.clock() - self.popup_time >= POPUP_SECONDS

    # Side effects

    def _clear_status(self):
        self.status = ""

    def _start_add(self):
        self.buffer.clear()
        self.pending = None
        self.status = ""

    def _commit_name(self):
        self.pending = Machine(name=self.buffer.text, mac="")
        self.buffer.clear()

    def _commit_mac(self):
        self.pending = replace(self.pending, mac=self.buffer.text)
        self.buffer.clear()

    def _cancel_input(self):
        self.buffer.clear()
        self.pending = None

    def _discard_pending(self):
        self.pending = None

    def _confirm_add(self):
        machine, self.pending = self.pending, None
        try:
            self.machines.add(machine)
        except PersistenceError as e:
            logger.error("Could not save new machine %r: %s", machine.name, e)
            self.status = f"❌ Could not save {machine.name}: {e}"
        else:
            self.status = f"✅ Added {machine.name}"

    def _confirm_delete(self):
        index = self.machines.cursor
        try:
            removed = self.machines.delete_at(index)
        except PersistenceError as e:
            logger.error("Could not delete machine at %d: %s", index, e)
            self.status = f"❌ Could not delete machine: {e}"
        else:
            self.status = f"🔥 Deleted {removed.name}"

    def _send(self):
        machine = self.machines.selected_machine()
        try:
            self.sender.send(machine.mac)
        except DispatchError as e:
            logger.warning("Wake-on-LAN to %r (%s) failed: %s", machine.name, machine.mac, e)
            self.status = f"❌ Could not wake {machine.name}: {e}"
            return False
        logger.info("Sent magic packet to %r (%s)", machine.name, machine.mac)
        self.popup_time = self.clock()
        self.status = f"🪄 Cast magic packet at {machine.name}"
        return True

    def _close_popup(self):
        self.popup_time = None


# =============================================================================
# Input routing
# =============================================================================

KEY_UP = "up"
KEY_DOWN = "down"
KEY_LEFT = "left"
KEY_RIGHT = "right"
KEY_HOME = "home"
KEY_END = "end"
KEY_ENTER = "enter"
KEY_ESC = "esc"
KEY_BACKSPACE = "backspace"
KEY_DELETE = "delete"


@dataclass(frozen=True)
class KeyPress:
    """A single key event: a printable character or one of the KEY_* names."""
    code: str
    kind: str = "press"


MAIN_KEYS = {
    "a": Event.ADD_REQUESTED,
    "d": Event.DELETE_REQUESTED,
    KEY_ENTER: Event.SEND_REQUESTED,
    "q": Event.EXIT_REQUESTED,
}

CONFIRM_KEYS = {
    "Y": Event.CONFIRMED,
    "n": Event.DECLINED,
    "N": Event.DECLINED,
    KEY_ESC: Event.DECLINED,
}

EDIT_KEYS = {
    KEY_BACKSPACE: LineBuffer.backspace,
    KEY_DELETE: LineBuffer.delete,
    KEY_LEFT: LineBuffer.left,
    KEY_RIGHT: LineBuffer.right,
    KEY_HOME: LineBuffer.home,
    KEY_END: LineBuffer.end,
}


def route_key(session, key):
    """
    Turn a key press into at most one session event and apply it.

    Text input modes edit the line buffer directly, and the main list moves
    its highlight directly; neither of those is an event. Returns the event
    that was applied (whether or not its guard let it through), or None.
    """
    if key.kind != "press":
        return None

    mode = session.mode
    if mode in (Mode.NAME_INPUT, Mode.MAC_INPUT):
        event = _route_text_key(session.buffer, key.code)
    elif mode is Mode.MAIN:
        event = _route_main_key(session.machines, key.code)
    elif mode in (Mode.CONFIRM_ADD, Mode.CONFIRM_DELETE):
        event = CONFIRM_KEYS.get(key.code)
    else:
        event = None

    if event is not None:
        session.apply(event)
    return event


def _route_text_key(buffer, code):
    if code == KEY_ENTER:
        return Event.COMMITTED
    if code == KEY_ESC:
        return Event.CANCELLED
    edit = EDIT_KEYS.get(code)
    if edit is not None:
        edit(buffer)
    elif len(code) == 1 and code.isprintable():
        buffer.insert(code)
    return None


def _route_main_key(machines, code):
    if code in (KEY_UP, "k"):
        machines.previous()
        return None
    if code in (KEY_DOWN, "j"):
        machines.next()
        return None
    return MAIN_KEYS.get(code)


# =============================================================================
# Frame projection
# =============================================================================

HELP_LINES = {
    Mode.MAIN: "↑/↓ select   Enter wake   a add   d delete   q quit",
    Mode.NAME_INPUT: "Enter next   Esc cancel",
    Mode.MAC_INPUT: "Enter next   Esc cancel   (AA:BB:CC:DD:EE:FF)",
    Mode.CONFIRM_ADD: "Y add   n cancel",
    Mode.CONFIRM_DELETE: "Y delete   n cancel",
    Mode.SEND_POP: "",
    Mode.EXITED: "",
}


@dataclass
class Popup:
    title: str
    lines: List[str]
    tone: str = "normal"
    cursor: Optional[int] = None


@dataclass
class Frame:
    title: str
    rows: List[str]
    highlighted: Optional[int]
    status: str
    help: str
    popup: Optional[Popup] = None


def format_machine_row(machine):
    """Format a machine as a list row: name padded to 20 columns, then the MAC."""
    return f"{machine.name:<20}{machine.mac}"


def _machine_lines(machine):
    return [f"name: {machine.name}", f"MAC:  {machine.mac}", ""]


def project_frame(session):
    """Describe what the screen should show for session, without touching it."""
    machines = session.machines
    frame = Frame(
        title="Machines",
        rows=[format_machine_row(m) for m in machines.list()],
        highlighted=machines.cursor,
        status=session.status,
        help=HELP_LINES[session.mode],
    )

    mode = session.mode
    selected = machines.selected_machine()
    if mode is Mode.NAME_INPUT:
        frame.popup = Popup("Machine Name", [session.buffer.text], cursor=session.buffer.pos)
    elif mode is Mode.MAC_INPUT:
        tone = "ok" if is_valid_mac(session.buffer.text) else "error"
        frame.popup = Popup("MAC Address", [session.buffer.text], tone=tone, cursor=session.buffer.pos)
    elif mode is Mode.CONFIRM_ADD:
        frame.popup = Popup("Add", _machine_lines(session.pending) + ["Add new machine? (Y/n)"])
    elif mode is Mode.CONFIRM_DELETE and selected is not None:
        frame.popup = Popup("Delete", _machine_lines(selected) + ["Delete machine? (Y/n)"])
    elif mode is Mode.SEND_POP and selected is not None:
        frame.popup = Popup("Wake-on-LAN", _machine_lines(selected) + ["Sent wol packet!"], tone="ok")
    return frame


# =============================================================================
# Persistence
# =============================================================================

def get_data_dir():
    """Return the data directory (~/.wol_caster), creating it if needed."""
    try:
        home = Path.home()
    except (RuntimeError, KeyError) as e:
        raise HomeDirError("Home directory not found") from e
    data_dir = home / DATA_DIR_NAME
    try:
        data_dir.mkdir(parents=True, exist_ok=True)
    except OSError as e:
        raise HomeDirError(f"Cannot create data directory {data_dir}: {e}") from e
    return data_dir


class MachineFile:
    """Machine list stored as JSON: {"machines": [{"name": ..., "mac_address": ...}]}."""

    def __init__(self, path):
        self.path = Path(path)

    def load(self):
        """Read the machine list; raises ConfigNotFound or ConfigParseError."""
        if not self.path.exists():
            raise ConfigNotFound(f"{self.path} does not exist")

        try:
            with open(self.path, "r", encoding="utf-8") as f:
                content = f.read()
        except OSError as e:
            raise PersistenceError(f"Cannot read {self.path}: {e}") from e
        except UnicodeDecodeError as e:
            raise ConfigParseError(f"{self.path} is not UTF-8 text: {e}") from e

        if not content.strip():
            return []

        try:
            data = json.loads(content)
        except json.JSONDecodeError as e:
            raise ConfigParseError(f"{self.path} is not valid JSON: {e}") from e

        if not isinstance(data, dict) or not isinstance(data.get("machines", []), list):
            raise ConfigParseError(f"{self.path} has no machine list")

        machines = []
        for position, item in enumerate(data.get("machines", [])):
            if not isinstance(item, dict):
                raise ConfigParseError(f"{self.path}: machine #{position + 1} is not a table")
            name = item.get("name")
            mac = item.get("mac_address")
            if not isinstance(name, str) or not isinstance(mac, str):
                raise ConfigParseError(f"{self.path}: machine #{position + 1} needs a name and mac_address")
            if not is_valid_mac(mac):
                logger.warning("Machine %r has a malformed MAC address %r", name, mac)
            machines.append(Machine(name=name, mac=mac))

        logger.debug("Loaded %d machines from %s", len(machines), self.path)
        return machines

    def load_or_create(self):
        """Read the machine list, starting a new empty file if there is none."""
        try:
            return self.load()
        except ConfigNotFound:
            logger.info("No machine file at %s, creating one", self.path)
            self.save([])
            return []

    def save(self, machines):
        """Write the machine list; raises PersistenceError on I/O failure."""
        data = {
            "machines": [{"name": m.name, "mac_address": m.mac} for m in machines]
        }
        tmp_path = self.path.with_name(self.path.name + ".tmp")
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            with open(tmp_path, "w", encoding="utf-8") as f:
                json.dump(data, f, indent=2)
            os.replace(tmp_path, self.path)
        except OSError as e:
            if tmp_path.exists():
                try:
                    tmp_path.unlink()
                except OSError as cleanup_error:
                    logger.debug("Could not remove %s: %s", tmp_path, cleanup_error)
            raise PersistenceError(f"Cannot write {self.path}: {e}") from e


# =============================================================================
# Settings and logging
# =============================================================================

@dataclass
class Settings:
    debug_mode: bool = False
    tick_rate_ms: int = 250
    ports: List[int] = field(default_factory=lambda: [7, 9])
    broadcast_address: str = "255.255.255.255"
    all_interfaces: bool = True


def _valid_setting(name, value):
    if name in ("debug_mode", "all_interfaces"):
        return isinstance(value, bool)
    if name == "tick_rate_ms":
        return isinstance(value, int) and not isinstance(value, bool) and value > 0
    if name == "ports":
        return (isinstance(value, list) and bool(value)
                and all(isinstance(p, int) and not isinstance(p, bool) and 0 < p < 65536 for p in value))
    if name == "broadcast_address":
        try:
            ipaddress.IPv4Address(value)
        except ValueError:
            return False
        return True
    return False


def load_settings(path):
    """Load settings from a JSON file, falling back to defaults for anything missing or wrong."""
    settings = Settings()
    path = Path(path)
    if not path.exists():
        return settings

    try:
        with open(path, "r", encoding="utf-8") as f:
            data = json.load(f)
    except (OSError, UnicodeDecodeError, json.JSONDecodeError) as e:
        logger.warning("Ignoring unreadable settings file %s: %s", path, e)
        return settings

    if not isinstance(data, dict):
        logger.warning("Ignoring settings file %s: not a JSON object", path)
        return settings

    for name in ("debug_mode", "tick_rate_ms", "ports", "broadcast_address", "all_interfaces"):
        if name not in data:
            continue
        if _valid_setting(name, data[name]):
            setattr(settings, name, data[name])
        else:
            logger.warning("Ignoring invalid setting %s=%r", name, data[name])
    return settings


def setup_logging(log_dir, debug=False):
    """Send this module's log records to a rotating file in log_dir."""
    handler = logging.handlers.RotatingFileHandler(
        Path(log_dir) / LOG_FILENAME, maxBytes=1024 * 1024, backupCount=3, encoding="utf-8"
    )
    handler.setFormatter(logging.Formatter("%(asctime)s [%(levelname)s] %(message)s"))

    for old in list(logger.handlers):
        logger.removeHandler(old)
        old.close()
    logger.addHandler(handler)
    logger.setLevel(logging.DEBUG if debug else logging.INFO)
    logger.propagate = False
    return handler


# =============================================================================
# Magic packets
# =============================================================================

def create_magic_packet(mac_address):
    """Create a Wake-on-LAN magic packet: six 0xFF bytes followed by the MAC sixteen times."""
    if not is_valid_mac(mac_address):
        raise DispatchError(f"Invalid MAC address format: {mac_address!r}")
    mac_bytes = bytes.fromhex(mac_address.replace(":", "").replace("-", ""))
    return b"\xFF" * 6 + mac_bytes * 16


def get_broadcast_addresses():
    """Get the directed broadcast address of every non-loopback IPv4 interface."""
    addresses = []

    for interface_name in netifaces.interfaces():
        # Skip loopback interfaces
        if interface_name.startswith("lo") or "Loopback" in interface_name:
            continue

        try:
            addrs = netifaces.ifaddresses(interface_name)
        except ValueError:
            continue

        for addr_info in addrs.get(netifaces.AF_INET, []):
            ip = addr_info.get("addr")
            netmask = addr_info.get("netmask")
            if not ip or not netmask or ip.startswith("127."):
                continue
            try:
                network = ipaddress.IPv4Network(f"{ip}/{netmask}", strict=False)
            except ValueError:
                continue
            broadcast = str(network.broadcast_address)
            if broadcast not in addresses:
                addresses.append(broadcast)

    return addresses


class MagicPacketSender:
    """Broadcasts magic packets over UDP."""

    def __init__(self, broadcast_address="255.255.255.255", ports=(7, 9), all_interfaces=True):
        self.broadcast_address = broadcast_address
        self.ports = list(ports)
        self.all_interfaces = all_interfaces

    def targets(self):
        """Return every broadcast address a packet should go to."""
        targets = [self.broadcast_address]
        if self.all_interfaces:
            try:
                interface_targets = get_broadcast_addresses()
            except (OSError, ValueError) as e:
                logger.debug("Interface lookup failed: %s", e)
                interface_targets = []
            targets.extend(t for t in interface_targets if t not in targets)
        return targets

    def send(self, mac_address):
        """Send a magic packet for mac_address; return the number of datagrams sent."""
        magic_packet = create_magic_packet(mac_address)
        sent = 0
        try:
            with socket.socket(socket.AF_INET, socket.SOCK_DGRAM) as sock:
                sock.setsockopt(socket.SOL_SOCKET, socket.SO_BROADCAST, 1)
                for target in self.targets():
                    for port in self.ports:
                        try:
                            sock.sendto(magic_packet, (target, port))
                            sent += 1
                        except OSError as e:
                            logger.debug("sendto %s:%d failed: %s", target, port, e)
        except OSError as e:
            raise DispatchError(f"Cannot open broadcast socket: {e}") from e

        if not sent:
            raise DispatchError("No magic packet could be sent")
        logger.debug("Sent %d magic packets for %s", sent, mac_address)
        return sent


# =============================================================================
# Terminal front end
# =============================================================================

def _curses_keymap():
    return {
        curses.KEY_UP: KEY_UP,
        curses.KEY_DOWN: KEY_DOWN,
        curses.KEY_LEFT: KEY_LEFT,
        curses.KEY_RIGHT: KEY_RIGHT,
        curses.KEY_HOME: KEY_HOME,
        curses.KEY_END: KEY_END,
        curses.KEY_ENTER: KEY_ENTER,
        curses.KEY_BACKSPACE: KEY_BACKSPACE,
        curses.KEY_DC: KEY_DELETE,
    }


CONTROL_CHARS = {
    "\n": KEY_ENTER,
    "\r": KEY_ENTER,
    "\x1b": KEY_ESC,
    "\x7f": KEY_BACKSPACE,
    "\x08": KEY_BACKSPACE,
}


def read_key(window):
    """Wait (up to the window timeout) for a key and return it as a KeyPress, or None."""
    try:
        ch = window.get_wch()
    except curses.error:
        return None

    if isinstance(ch, int):
        code = _curses_keymap().get(ch)
        return KeyPress(code) if code else None
    if ch in CONTROL_CHARS:
        return KeyPress(CONTROL_CHARS[ch])
    return KeyPress(ch)


class CursesScreen:
    """Paints Frames onto a curses window."""

    def __init__(self, window):
        self.window = window
        self.attrs = {"normal": curses.A_NORMAL, "ok": curses.A_BOLD, "error": curses.A_NORMAL}
        self.highlight = curses.A_REVERSE | curses.A_BOLD
        if curses.has_colors():
            curses.start_color()
            curses.use_default_colors()
            curses.init_pair(1, curses.COLOR_BLACK, curses.COLOR_GREEN)
            curses.init_pair(2, curses.COLOR_GREEN, -1)
            curses.init_pair(3, curses.COLOR_RED, -1)
            self.highlight = curses.color_pair(1) | curses.A_BOLD
            self.attrs["ok"] = curses.color_pair(2) | curses.A_BOLD
            self.attrs["error"] = curses.color_pair(3)

    @staticmethod
    def _put(win, y, x, text, attr=0):
        height, width = win.getmaxyx()
        if y < 0 or y >= height or x >= width:
            return
        try:
            win.addnstr(y, x, text, max(width - x - 1, 0), attr)
        except curses.error:
            pass

    @staticmethod
    def _show_cursor(visible):
        try:
            curses.curs_set(1 if visible else 0)
        except curses.error:
            pass

    def draw(self, frame):
        win = self.window
        win.erase()
        height, width = win.getmaxyx()
        # title, list rows, separator, status, help
        list_height = max(height - 4, 1)

        self._put(win, 0, 1, frame.title, curses.A_BOLD | curses.A_UNDERLINE)

        first = 0
        if frame.highlighted is not None and frame.highlighted >= list_height:
            first = frame.highlighted - list_height + 1
        for offset, row in enumerate(frame.rows[first:first + list_height]):
            index = first + offset
            if index == frame.highlighted:
                self._put(win, 1 + offset, 1, (">> " + row).ljust(width - 2), self.highlight)
            else:
                self._put(win, 1 + offset, 1, "   " + row)

        self._put(win, height - 3, 0, "─" * width)
        self._put(win, height - 2, 1, frame.status)
        self._put(win, height - 1, 1, frame.help, curses.A_DIM)

        self._show_cursor(False)
        win.noutrefresh()
        if frame.popup is not None:
            self._draw_popup(frame.popup, height, width)
        curses.doupdate()

    def _draw_popup(self, popup, height, width):
        box_width = max(min(width, int(width * 0.6)), 10)
        box_height = min(len(popup.lines) + 2, height)
        top = max((height - box_height) // 2, 0)
        left = max((width - box_width) // 2, 0)
        try:
            box = curses.newwin(box_height, box_width, top, left)
        except curses.error:
            return

        attr = self.attrs.get(popup.tone, curses.A_NORMAL)
        box.bkgd(" ", attr)
        box.erase()
        box.box()
        self._put(box, 0, 2, f" {popup.title} ", attr | curses.A_BOLD)
        for offset, line in enumerate(popup.lines):
            self._put(box, 1 + offset, 1, line, attr)

        if popup.cursor is not None and box_height > 2:
            self._show_cursor(True)
            box.move(1, min(1 + popup.cursor, box_width - 2))
        box.noutrefresh()


def run_session(window, session, tick_rate=0.25):
    """Drive session from curses input until the user quits."""
    screen = CursesScreen(window)
    window.keypad(True)
    last_tick = time.monotonic()

    while session.running:
        screen.draw(project_frame(session))

        remaining = tick_rate - (time.monotonic() - last_tick)
        window.timeout(max(int(remaining * 1000), 0))
        key = read_key(window)
        if key is not None:
            route_key(session, key)

        if time.monotonic() - last_tick >= tick_rate:
            session.tick()
            last_tick = time.monotonic()


# =============================================================================
# Command line
# =============================================================================

def get_option(argv, name):
    """Return the value given for --name (as '--name value' or '--name=value'), or None."""
    for i, arg in enumerate(argv):
        if arg == name:
            if i + 1 >= len(argv):
                raise ValueError(f"{name} needs a value")
            return argv[i + 1]
        if arg.startswith(name + "="):
            return arg[len(name) + 1:]
    return None


def print_machine_table(machines):
    """Print the saved machines as a two-column table."""
    if not machines:
        print("❌ No machines saved yet.")
        print("💡 Run wol-tui and press 'a' to add one.")
        return

    headers = ("Name", "MAC Address")
    name_width = max(len(headers[0]), *(len(m.name) for m in machines))
    mac_width = max(len(headers[1]), *(len(m.mac) for m in machines))

    print()
    print(f"{headers[0].ljust(name_width)} {headers[1].ljust(mac_width)}")
    print("-" * (name_width + mac_width + 1))
    for machine in machines:
        print(f"{machine.name.ljust(name_width)} {machine.mac.ljust(mac_width)}")
    print()


def _mac_key(mac):
    return mac.replace(":", "").replace("-", "").lower()


def wake_by_name(machines, sender, target):
    """Send a magic packet to the first machine whose name or MAC matches target."""
    for machine in machines.list():
        if machine.name == target or _mac_key(machine.mac) == _mac_key(target):
            try:
                sender.send(machine.mac)
            except DispatchError as e:
                print(f"❌ Could not wake {machine.name}: {e}")
                return 1
            print(f"🪄 Cast magic packet at {machine.name} ({machine.mac})")
            return 0

    print(f"❌ No saved machine named {target!r}")
    return 1


def show_help():
    """Show help information."""
    print("""
WoL-TUI - Wake-on-LAN machine list

Usage:
    wol-tui [OPTIONS]

Options:
    --config PATH   Use PATH as the machine file (default ~/.wol_caster/machines.json)
    --list, -l      Print saved machines and exit
    --wake NAME     Wake the saved machine called NAME (or with MAC NAME) and exit
    --debug         Log debug messages to ~/.wol_caster/wol_tui.log
    --help, -h      Show this help message
    --version       Show version information

Keys:
    Up/Down   select machine       Enter   send magic packet
    a         add machine          d       delete machine
    q         quit
""".strip())


def show_version():
    """Show version information."""
    print(f"WoL-TUI v{__version__}")
    print(__description__)


def main(argv=None):
    """Main entry point."""
    argv = sys.argv[1:] if argv is None else list(argv)

    if "--help" in argv or "-h" in argv:
        show_help()
        return 0

    if "--version" in argv:
        show_version()
        return 0

    try:
        config_option = get_option(argv, "--config")
        wake_target = get_option(argv, "--wake")
    except ValueError as e:
        print(f"❌ {e}")
        return 1

    try:
        data_dir = get_data_dir()
    except HomeDirError as e:
        print(f"❌ {e}")
        return 1

    settings = load_settings(data_dir / SETTINGS_FILENAME)
    setup_logging(data_dir, debug=settings.debug_mode or "--debug" in argv)

    machine_file = MachineFile(config_option or data_dir / MACHINES_FILENAME)
    try:
        machines = MachineList(machine_file.load_or_create(), machine_file)
    except PersistenceError as e:
        logger.error("Failed to load machines: %s", e)
        print(f"❌ Failed to load machines: {e}")
        return 1

    sender = MagicPacketSender(
        broadcast_address=settings.broadcast_address,
        ports=settings.ports,
        all_interfaces=settings.all_interfaces,
    )

    if "--list" in argv or "-l" in argv:
        print_machine_table(machines.list())
        return 0

    if wake_target is not None:
        return wake_by_name(machines, sender, wake_target)

    if not CURSES_AVAILABLE:
        print("❌ The terminal interface needs curses (pip install windows-curses on Windows).")
        return 1

    # Keep Esc responsive instead of waiting for an escape sequence
    os.environ.setdefault("ESCDELAY", "25")

    logger.info("Starting session with %d machines", len(machines))
    session = Session(machines, sender)
    curses.wrapper(run_session, session, settings.tick_rate_ms / 1000)
    logger.info("Session ended")
    return 0


if __name__ == "__main__":
    sys.exit(main())
