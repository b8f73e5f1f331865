"""Tests for routing key presses into the session."""
import pytest

from wol_tui import (
    KEY_BACKSPACE,
    KEY_DELETE,
    KEY_DOWN,
    KEY_END,
    KEY_ENTER,
    KEY_ESC,
    KEY_HOME,
    KEY_LEFT,
    KEY_UP,
    Event,
    KeyPress,
    LineBuffer,
    Machine,
    Mode,
    route_key,
)

DESK = Machine("desk", "AA:BB:CC:DD:EE:01")
NAS = Machine("nas", "AA:BB:CC:DD:EE:02")


def press(session, *codes):
    return [route_key(session, KeyPress(code)) for code in codes]


def type_text(session, text):
    press(session, *text)


class TestMainKeys:

    def test_arrows_move_highlight_without_events(self, make_session):
        session = make_session([DESK, NAS])
        assert press(session, KEY_DOWN) == [None]
        assert session.machines.cursor == 1
        assert press(session, KEY_UP) == [None]
        assert session.machines.cursor == 0
        assert session.mode is Mode.MAIN

    def test_vi_keys_move_highlight(self, make_session):
        session = make_session([DESK, NAS])
        press(session, "j")
        assert session.machines.cursor == 1
        press(session, "k")
        assert session.machines.cursor == 0

    @pytest.mark.parametrize("code,event,mode", [
        ("a", Event.ADD_REQUESTED, Mode.NAME_INPUT),
        ("d", Event.DELETE_REQUESTED, Mode.CONFIRM_DELETE),
        (KEY_ENTER, Event.SEND_REQUESTED, Mode.SEND_POP),
        ("q", Event.EXIT_REQUESTED, Mode.EXITED),
    ])
    def test_command_keys(self, make_session, code, event, mode):
        session = make_session([DESK])
        assert press(session, code) == [event]
        assert session.mode is mode

    def test_unmapped_key_is_ignored(self, make_session):
        session = make_session([DESK])
        assert press(session, "x", KEY_ESC, "Y") == [None, None, None]
        assert session.mode is Mode.MAIN

    def test_key_release_is_ignored(self, make_session, sender):
        session = make_session([DESK])
        assert route_key(session, KeyPress(KEY_ENTER, kind="release")) is None
        assert session.mode is Mode.MAIN
        assert sender.sent == []


class TestTextInput:

    def test_full_add_flow_from_keys(self, make_session, store):
        session = make_session()
        press(session, "a")
        type_text(session, "desk")
        press(session, KEY_ENTER)
        assert session.mode is Mode.MAC_INPUT
        type_text(session, "AA:BB:CC:DD:EE:FF")
        press(session, KEY_ENTER)
        assert session.mode is Mode.CONFIRM_ADD
        press(session, "Y")

        assert session.mode is Mode.MAIN
        assert session.machines.list()[-1] == Machine("desk", "AA:BB:CC:DD:EE:FF")
        assert store.saved[-1][-1] == Machine("desk", "AA:BB:CC:DD:EE:FF")

    def test_command_letters_are_typed_not_routed(self, make_session):
        session = make_session([DESK])
        press(session, "a")
        type_text(session, "quad")
        assert session.mode is Mode.NAME_INPUT
        assert session.buffer.text == "quad"

    def test_arrows_do_not_move_highlight_while_typing(self, make_session):
        session = make_session([DESK, NAS])
        press(session, "a", KEY_DOWN)
        assert session.machines.cursor == 0

    def test_invalid_mac_enter_keeps_typing(self, make_session):
        session = make_session()
        press(session, "a", KEY_ENTER)
        type_text(session, "aa:bb:cc")
        assert press(session, KEY_ENTER) == [Event.COMMITTED]
        assert session.mode is Mode.MAC_INPUT
        assert session.buffer.text == "aa:bb:cc"

    def test_escape_cancels(self, make_session):
        session = make_session()
        press(session, "a")
        type_text(session, "desk")
        assert press(session, KEY_ESC) == [Event.CANCELLED]
        assert session.mode is Mode.MAIN
        assert session.buffer.text == ""

    def test_editing_keys(self, make_session):
        session = make_session()
        press(session, "a")
        type_text(session, "dsk")
        press(session, KEY_LEFT, KEY_LEFT)
        type_text(session, "e")
        assert session.buffer.text == "desk"
        press(session, KEY_END, KEY_BACKSPACE)
        assert session.buffer.text == "des"
        press(session, KEY_HOME, KEY_DELETE)
        assert session.buffer.text == "es"

    def test_non_printable_characters_are_dropped(self, make_session):
        session = make_session()
        press(session, "a", "\t", "\x01")
        assert session.buffer.text == ""


class TestConfirmKeys:

    @pytest.mark.parametrize("code", ["n", "N", KEY_ESC])
    def test_decline_keys(self, make_session, code):
        session = make_session([DESK])
        press(session, "d")
        assert press(session, code) == [Event.DECLINED]
        assert session.mode is Mode.MAIN
        assert session.machines.list() == (DESK,)

    def test_lowercase_y_does_not_confirm(self, make_session):
        session = make_session([DESK])
        press(session, "d", "y")
        assert session.mode is Mode.CONFIRM_DELETE

    def test_navigation_is_inert_in_dialogs(self, make_session):
        session = make_session([DESK, NAS])
        press(session, "d", KEY_DOWN, "q", "a")
        assert session.mode is Mode.CONFIRM_DELETE
        assert session.machines.cursor == 0

    def test_confirm_delete_removes_highlighted(self, make_session):
        session = make_session([DESK, NAS])
        press(session, KEY_DOWN, "d", "Y")
        assert session.machines.list() == (DESK,)
        assert session.machines.cursor == 0

    def test_confirm_add_mapping_matches_delete(self, make_session):
        session = make_session()
        press(session, "a", KEY_ENTER)
        type_text(session, "aa-bb-cc-dd-ee-ff")
        press(session, KEY_ENTER)
        assert press(session, "x") == [None]
        assert press(session, "N") == [Event.DECLINED]
        assert session.machines.list() == ()


class TestInertModes:

    def test_popup_ignores_keys(self, make_session, sender):
        session = make_session([DESK])
        press(session, KEY_ENTER)
        assert press(session, KEY_ENTER, "q", "a", KEY_ESC) == [None] * 4
        assert session.mode is Mode.SEND_POP
        assert sender.sent == [DESK.mac]

    def test_exited_ignores_keys(self, make_session):
        session = make_session([DESK])
        press(session, "q")
        assert press(session, "a", KEY_ENTER) == [None, None]
        assert session.mode is Mode.EXITED


class TestLineBuffer:

    def test_backspace_at_start_is_noop(self):
        buffer = LineBuffer("ab")
        buffer.home()
        buffer.backspace()
        assert buffer.text == "ab"

    def test_cursor_stays_in_bounds(self):
        buffer = LineBuffer("ab")
        buffer.right()
        assert buffer.pos == 2
        buffer.home()
        buffer.left()
        assert buffer.pos == 0

    def test_clear(self):
        buffer = LineBuffer("abc")
        buffer.clear()
        assert (buffer.text, buffer.pos) == ("", 0)
