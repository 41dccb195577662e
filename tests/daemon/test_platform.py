"""Tests for platform detection utilities."""

import platform
from pathlib import Path

from to_concentrate.daemon.platform import (
    Platform,
    get_ipc_socket_path,
    get_log_file_path,
    get_pid_file_path,
    get_platform,
    get_runtime_dir,
    is_daemon_supported,
)


class TestPlatformDetection:
    """Test platform detection."""

    def test_get_platform(self) -> None:
        """Test platform detection returns valid platform."""
        plat = get_platform()
        assert isinstance(plat, Platform)

    def test_get_platform_matches_system(self) -> None:
        """Test platform detection matches system platform."""
        plat = get_platform()
        system = platform.system().lower()

        if system == "linux":
            assert plat == Platform.LINUX
        elif system == "darwin":
            assert plat == Platform.MACOS
        elif system == "windows":
            assert plat == Platform.WINDOWS

    def test_is_daemon_supported(self) -> None:
        """Test support check agrees with the platform."""
        supported, reason = is_daemon_supported()

        assert supported is (get_platform() in (Platform.LINUX, Platform.MACOS))
        assert isinstance(reason, str)


class TestPaths:
    """Test path utilities."""

    def test_runtime_dir_uses_xdg(self, monkeypatch, tmp_path) -> None:
        """Test XDG_RUNTIME_DIR is honored and created."""
        monkeypatch.setenv("XDG_RUNTIME_DIR", str(tmp_path))

        runtime_dir = get_runtime_dir()

        assert runtime_dir == tmp_path / "to-concentrate"
        assert runtime_dir.is_dir()

    def test_runtime_dir_fallback(self, monkeypatch, tmp_path) -> None:
        """Test a private temp directory is used without XDG_RUNTIME_DIR."""
        monkeypatch.delenv("XDG_RUNTIME_DIR", raising=False)
        monkeypatch.setattr("tempfile.tempdir", str(tmp_path))

        runtime_dir = get_runtime_dir()

        assert runtime_dir.parent == tmp_path
        assert runtime_dir.name.startswith("to-concentrate-")
        assert runtime_dir.stat().st_mode & 0o777 == 0o700

    def test_socket_and_pid_paths(self, monkeypatch, tmp_path) -> None:
        """Test socket and PID file live in the runtime directory."""
        monkeypatch.setenv("XDG_RUNTIME_DIR", str(tmp_path))

        assert get_ipc_socket_path() == tmp_path / "to-concentrate" / "daemon.sock"
        assert get_pid_file_path() == tmp_path / "to-concentrate" / "daemon.pid"

    def test_pid_file_follows_socket(self, tmp_path) -> None:
        """Test a custom socket gets its own PID file beside it."""
        assert get_pid_file_path(tmp_path / "work.sock") == tmp_path / "work.pid"

    def test_get_log_file_path(self, monkeypatch, tmp_path) -> None:
        """Test log file path uses XDG_STATE_HOME."""
        monkeypatch.setenv("XDG_STATE_HOME", str(tmp_path))

        path = get_log_file_path()

        assert isinstance(path, Path)
        assert path == tmp_path / "to-concentrate" / "daemon.log"
        assert path.parent.exists()
