"""Tests for the popup break window and its manager."""

from unittest.mock import Mock, call, patch

from breaktimer.config import Duration, Settings, SoundType
from breaktimer.ipc import IpcChannel
from breaktimer.ui.break_window import BreakWindow, BreakWindowManager


def _bridge(allow_postpone=True, break_length=Duration(minutes=2)):
    bridge = Mock()
    responses = {
        IpcChannel.BREAK_LENGTH_GET: break_length,
        IpcChannel.ALLOW_POSTPONE_GET: allow_postpone,
    }
    bridge.invoke.side_effect = lambda channel, *args: responses.get(channel)
    return bridge


@patch("breaktimer.ui.break_window.ttk")
@patch("breaktimer.ui.break_window.tk")
class TestBreakWindow:
    """Tests for BreakWindow."""

    def _show(self, mock_tk, bridge, settings=None):
        toplevel = mock_tk.Toplevel.return_value
        toplevel.winfo_screenwidth.return_value = 1920
        toplevel.winfo_screenheight.return_value = 1080
        on_closed = Mock()
        window = BreakWindow(bridge, settings or Settings(), on_closed)
        window.show(Mock())
        return window, toplevel, on_closed

    @staticmethod
    def _button_labels(mock_ttk):
        return [c.kwargs["text"] for c in mock_ttk.Button.call_args_list]

    def test_postpone_offered_when_allowed(self, mock_tk, mock_ttk):
        self._show(mock_tk, _bridge(allow_postpone=True))

        assert self._button_labels(mock_ttk) == ["Skip", "Postpone"]

    def test_postpone_hidden_at_limit(self, mock_tk, mock_ttk):
        self._show(mock_tk, _bridge(allow_postpone=False))

        assert self._button_labels(mock_ttk) == ["Skip"]

    def test_countdown_starts_from_break_length(self, mock_tk, mock_ttk):
        window, toplevel, _ = self._show(mock_tk, _bridge(break_length=Duration(minutes=2)))

        mock_tk.StringVar.assert_called_once_with(master=toplevel, value="02:00")
        toplevel.after.assert_called_once_with(1000, window._countdown)

    def test_countdown_end_plays_end_sound_then_closes(self, mock_tk, mock_ttk):
        bridge = _bridge(break_length=Duration(seconds=1))
        window, toplevel, on_closed = self._show(
            mock_tk, bridge, Settings(sound_type=SoundType.BLIP)
        )

        window._countdown()

        bridge.invoke.assert_any_call(IpcChannel.SOUND_END_PLAY, SoundType.BLIP)
        toplevel.destroy.assert_called_once()
        on_closed.assert_called_once()

    def test_countdown_end_is_silent_without_sound(self, mock_tk, mock_ttk):
        bridge = _bridge(break_length=Duration(seconds=1))
        window, _, on_closed = self._show(mock_tk, bridge, Settings(sound_type=SoundType.NONE))

        window._countdown()

        assert call(IpcChannel.SOUND_END_PLAY, SoundType.NONE) not in bridge.invoke.call_args_list
        on_closed.assert_called_once()

    def test_postpone_then_close(self, mock_tk, mock_ttk):
        bridge = _bridge()
        window, toplevel, on_closed = self._show(mock_tk, bridge)

        window._postpone()

        bridge.invoke.assert_any_call(IpcChannel.BREAK_POSTPONE)
        toplevel.destroy.assert_called_once()
        on_closed.assert_called_once()

    def test_close_only_once(self, mock_tk, mock_ttk):
        window, _, on_closed = self._show(mock_tk, _bridge())

        window._close()
        window._close()
        window._countdown()

        on_closed.assert_called_once()


class TestBreakWindowManager:
    """Tests for BreakWindowManager."""

    def setup_method(self):
        self.bridge = Mock()
        self.settings = Settings(sound_type=SoundType.GONG)
        self.on_closed = Mock()
        self.manager = BreakWindowManager(self.bridge, lambda: self.settings, self.on_closed)
        self.manager._root = Mock()

    def test_open_plays_start_sound(self):
        self.manager.open_break_windows()

        self.bridge.play_sound.assert_called_once_with(SoundType.GONG)
        assert self.manager.window_open is True

    def test_open_is_silent_without_sound(self):
        self.settings = Settings(sound_type=SoundType.NONE)

        self.manager.open_break_windows()

        self.bridge.play_sound.assert_not_called()

    @patch("breaktimer.ui.break_window.BreakWindow")
    def test_second_open_is_ignored_while_showing(self, mock_window_cls):
        self.manager.open_break_windows()
        self.manager.open_break_windows()
        self.manager._drain_requests()

        mock_window_cls.assert_called_once()
        mock_window_cls.return_value.show.assert_called_once_with(self.manager._root)
        self.bridge.play_sound.assert_called_once()

    @patch("breaktimer.ui.break_window.BreakWindow")
    def test_window_shown_on_root_thread_only(self, mock_window_cls):
        self.manager.open_break_windows()

        # Nothing is built until the Tk loop drains the queue
        mock_window_cls.assert_not_called()

        self.manager._drain_requests()

        mock_window_cls.assert_called_once()
        self.manager._root.after.assert_called_once_with(200, self.manager._drain_requests)

    @patch("breaktimer.ui.break_window.BreakWindow")
    def test_closing_allows_next_window(self, mock_window_cls):
        self.manager.open_break_windows()
        self.manager._drain_requests()

        on_window_closed = mock_window_cls.call_args[0][2]
        on_window_closed()

        self.on_closed.assert_called_once()
        assert self.manager.window_open is False

        self.manager.open_break_windows()
        self.manager._drain_requests()
        assert mock_window_cls.call_count == 2

    @patch("breaktimer.ui.break_window.BreakWindow")
    def test_show_failure_still_ends_break(self, mock_window_cls):
        mock_window_cls.return_value.show.side_effect = RuntimeError("no display")

        self.manager.open_break_windows()
        self.manager._drain_requests()

        self.on_closed.assert_called_once()
        assert self.manager.window_open is False

    def test_stop_quits_loop(self):
        self.manager.stop()
        self.manager._drain_requests()

        self.manager._root.quit.assert_called_once()
        self.manager._root.after.assert_not_called()
