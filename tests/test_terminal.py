"""Tests for mainframe.terminal with curses patched out."""

from __future__ import annotations

import curses
from unittest.mock import MagicMock, patch

import pytest

from mainframe.terminal import CursesTerminal, TerminalError


@pytest.fixture
def mock_curses():
    with patch("mainframe.terminal.curses") as m:
        m.error = curses.error
        m.KEY_RESIZE = curses.KEY_RESIZE
        m.has_colors.return_value = False
        stdscr = MagicMock()
        stdscr.getmaxyx.return_value = (24, 80)
        stdscr.getch.return_value = -1
        m.initscr.return_value = stdscr
        yield m


class TestLifecycle:
    def test_enter_and_exit(self, mock_curses: MagicMock) -> None:
        with CursesTerminal():
            mock_curses.cbreak.assert_called_once()
            mock_curses.noecho.assert_called_once()
        mock_curses.endwin.assert_called_once()
        mock_curses.echo.assert_called_once()

    def test_release_happens_once(self, mock_curses: MagicMock) -> None:
        term = CursesTerminal()
        term.__enter__()
        term.__exit__(None, None, None)
        term.__exit__(None, None, None)
        mock_curses.endwin.assert_called_once()

    def test_release_on_exception(self, mock_curses: MagicMock) -> None:
        with pytest.raises(RuntimeError):
            with CursesTerminal():
                raise RuntimeError("boom")
        mock_curses.endwin.assert_called_once()

    def test_setup_failure_restores(self, mock_curses: MagicMock) -> None:
        mock_curses.cbreak.side_effect = curses.error("no tty")
        with pytest.raises(TerminalError):
            CursesTerminal().__enter__()
        mock_curses.endwin.assert_called_once()

    def test_hidden_cursor_optional(self, mock_curses: MagicMock) -> None:
        mock_curses.curs_set.side_effect = curses.error
        with CursesTerminal():
            pass
        mock_curses.endwin.assert_called_once()


class TestDraw:
    def test_callback_gets_screen_size(self, mock_curses: MagicMock) -> None:
        seen = []
        with CursesTerminal() as term:
            term.draw(lambda win, h, w: seen.append((h, w)))
        assert seen == [(24, 80)]
        stdscr = mock_curses.initscr.return_value
        stdscr.erase.assert_called_once()
        stdscr.refresh.assert_called_once()

    def test_curses_error_becomes_terminal_error(self, mock_curses: MagicMock) -> None:
        mock_curses.initscr.return_value.refresh.side_effect = curses.error("gone")
        with CursesTerminal() as term:
            with pytest.raises(TerminalError):
                term.draw(lambda win, h, w: None)

    def test_draw_requires_acquired_terminal(self, mock_curses: MagicMock) -> None:
        with pytest.raises(TerminalError):
            CursesTerminal().draw(lambda win, h, w: None)


class TestReadKey:
    def test_no_key(self, mock_curses: MagicMock) -> None:
        with CursesTerminal() as term:
            assert term.read_key(1) is None

    def test_key(self, mock_curses: MagicMock) -> None:
        mock_curses.initscr.return_value.getch.return_value = ord("q")
        with CursesTerminal() as term:
            assert term.read_key(1) == ord("q")

    def test_resize_clears(self, mock_curses: MagicMock) -> None:
        stdscr = mock_curses.initscr.return_value
        stdscr.getch.return_value = curses.KEY_RESIZE
        with CursesTerminal() as term:
            assert term.read_key(1) == curses.KEY_RESIZE
        stdscr.clear.assert_called_once()


class TestAcquireFailure:
    def test_initscr_failure_is_terminal_error(self, mock_curses: MagicMock) -> None:
        mock_curses.initscr.side_effect = curses.error("setupterm: could not find terminal")
        with pytest.raises(TerminalError, match="could not find terminal"):
            CursesTerminal().__enter__()
        mock_curses.endwin.assert_not_called()

    def test_nothing_to_release_after_failed_open(self, mock_curses: MagicMock) -> None:
        mock_curses.initscr.side_effect = curses.error("no tty")
        term = CursesTerminal()
        with pytest.raises(TerminalError):
            term.__enter__()
        term.__exit__(None, None, None)
        mock_curses.endwin.assert_not_called()
