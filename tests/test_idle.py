"""Tests for the OS idle/lock probe."""

from unittest.mock import Mock, patch

import pytest

from breaktimer.idle import IdleState, SystemIdleProbe, _probe_windows


class TestSystemIdleProbe:
    """Tests for SystemIdleProbe."""

    def setup_method(self):
        self.probe = SystemIdleProbe()

    @patch("breaktimer.idle._system", "Linux")
    def test_unsupported_platform_is_unknown(self):
        assert self.probe.get_state(300) == IdleState.UNKNOWN

    @patch("breaktimer.idle._system", "Darwin")
    @patch("breaktimer.idle._probe_macos", return_value=(False, 12.0))
    def test_active(self, _mock_probe):
        assert self.probe.get_state(300) == IdleState.ACTIVE

    @patch("breaktimer.idle._system", "Darwin")
    @patch("breaktimer.idle._probe_macos", return_value=(False, 300.0))
    def test_idle_at_threshold(self, _mock_probe):
        assert self.probe.get_state(300) == IdleState.IDLE

    @patch("breaktimer.idle._system", "Windows")
    @patch("breaktimer.idle._probe_windows", return_value=(True, None))
    def test_locked(self, _mock_probe):
        assert self.probe.get_state(300) == IdleState.LOCKED

    @patch("breaktimer.idle._system", "Windows")
    @patch("breaktimer.idle._probe_windows", return_value=(False, None))
    def test_missing_idle_time_is_unknown(self, _mock_probe):
        assert self.probe.get_state(300) == IdleState.UNKNOWN

    @patch("breaktimer.idle._system", "Darwin")
    @patch("breaktimer.idle._probe_macos", side_effect=ImportError("No module named 'Quartz'"))
    def test_probe_failure_is_unknown(self, _mock_probe):
        assert self.probe.get_state(300) == IdleState.UNKNOWN


class TestWindowsProbe:
    """Tests for the ctypes-based Windows probe."""

    def setup_method(self):
        try:
            import ctypes.wintypes  # noqa: F401
        except (ImportError, ValueError):
            pytest.skip("ctypes.wintypes not available")

    def _windll(self, tick_count, last_input_time, desktop=0x7FFF00001234):
        windll = Mock()
        user32 = windll.user32
        user32.OpenInputDesktop.return_value = desktop
        user32.SwitchDesktop.return_value = 1

        def fill_last_input(ref):
            ref._obj.dwTime = last_input_time
            return 1

        user32.GetLastInputInfo.side_effect = fill_last_input
        windll.kernel32.GetTickCount.return_value = tick_count
        return windll

    def test_desktop_handle_is_pointer_sized(self):
        import ctypes.wintypes as wintypes

        windll = self._windll(tick_count=5000, last_input_time=2000)
        with patch("ctypes.windll", windll, create=True):
            locked, idle_seconds = _probe_windows()

        assert windll.user32.OpenInputDesktop.restype is wintypes.HANDLE
        windll.user32.CloseDesktop.assert_called_once_with(0x7FFF00001234)
        assert locked is False
        assert idle_seconds == 3.0

    def test_idle_time_across_tick_count_wrap(self):
        windll = self._windll(tick_count=1000, last_input_time=0xFFFFFFFF - 999)
        with patch("ctypes.windll", windll, create=True):
            _, idle_seconds = _probe_windows()

        assert idle_seconds == 2.0

    def test_no_input_desktop_means_locked(self):
        windll = self._windll(tick_count=0, last_input_time=0, desktop=None)
        with patch("ctypes.windll", windll, create=True):
            assert _probe_windows() == (True, None)
