"""
Test suite for runner.py
Tests spawning, credential transfer and the AUR helper script
"""

import os
import shlex
import stat
import subprocess
from unittest.mock import MagicMock, Mock, patch

import pytest
from archstore.errors import CredentialTransferError, SpawnError
from archstore.runner import ProcessRunner, command_env, run_query, script_path_for


class TestSpawn:
    """Tests for spawning processes"""

    @pytest.mark.unit
    def test_command_env_disables_translation_and_colour(self):
        env = command_env()

        assert env['LC_MESSAGES'] == "C"
        assert 'NO_COLOR' in env

    @pytest.mark.unit
    @patch('archstore.runner.subprocess.Popen')
    def test_spawn_pipes_both_streams(self, mock_popen, settings):
        runner = ProcessRunner(settings)

        runner.spawn(['flatpak', 'update', '-y'])

        args, kwargs = mock_popen.call_args
        assert args[0] == ['flatpak', 'update', '-y']
        assert kwargs['stdout'] == subprocess.PIPE
        assert kwargs['stderr'] == subprocess.PIPE
        assert kwargs['stdin'] == subprocess.DEVNULL
        assert kwargs['text'] == True

    @pytest.mark.unit
    @patch('archstore.runner.subprocess.Popen')
    def test_missing_executable_raises_spawn_error(self, mock_popen, settings):
        mock_popen.side_effect = FileNotFoundError(2, "No such file or directory")
        runner = ProcessRunner(settings)

        with pytest.raises(SpawnError) as exc_info:
            runner.spawn(['flatpak', 'update', '-y'])

        assert exc_info.value.executable == "flatpak"
        assert "Failed to spawn flatpak" in str(exc_info.value)

    @pytest.mark.unit
    @patch('archstore.runner.subprocess.run')
    def test_run_query(self, mock_run):
        mock_run.return_value = Mock(returncode=0, stdout="bash 5.2\n", stderr="")

        result = run_query(['pacman', '-Q'])

        assert result.stdout == "bash 5.2\n"
        assert mock_run.call_args[0][0] == ['pacman', '-Q']
        assert mock_run.call_args[1]['stdin'] == subprocess.DEVNULL

    @pytest.mark.unit
    @patch('archstore.runner.subprocess.run')
    def test_run_query_spawn_failure(self, mock_run):
        mock_run.side_effect = PermissionError(13, "Permission denied")

        with pytest.raises(SpawnError):
            run_query(['checkupdates'])

    @pytest.mark.unit
    def test_wait_kills_on_timeout(self, settings):
        process = Mock()
        process.wait.side_effect = [subprocess.TimeoutExpired("pacman", 5), 0]
        runner = ProcessRunner(settings)

        with pytest.raises(subprocess.TimeoutExpired):
            runner.wait(process, 5)

        process.kill.assert_called_once()
        assert process.wait.call_count == 2


class TestCredentialTransfer:
    """Tests for writing the credential to the elevation tool"""

    @pytest.mark.security
    @patch('archstore.runner.subprocess.Popen')
    def test_spawn_elevated_writes_credential_then_closes(self, mock_popen, settings):
        process = MagicMock()
        mock_popen.return_value = process
        runner = ProcessRunner(settings)

        runner.spawn_elevated(['pacman', '-S', '--noconfirm', 'htop'], "hunter2")

        args, kwargs = mock_popen.call_args
        assert args[0] == ['sudo', '-S', 'pacman', '-S', '--noconfirm', 'htop']
        assert kwargs['stdin'] == subprocess.PIPE
        process.stdin.write.assert_called_once_with("hunter2\n")
        process.stdin.close.assert_called_once()

    @pytest.mark.security
    @patch('archstore.runner.subprocess.Popen')
    def test_credential_is_not_logged(self, mock_popen, settings):
        from archstore.logger import get_logger
        mock_popen.return_value = MagicMock()
        runner = ProcessRunner(settings)

        runner.spawn_elevated(['pacman', '-Syu', '--noconfirm'], "hunter2")

        log = get_logger().read_log_file()
        assert "pacman -Syu" in log
        assert "hunter2" not in log

    @pytest.mark.security
    def test_broken_pipe_raises_transfer_error(self, settings):
        process = MagicMock()
        process.stdin.write.side_effect = BrokenPipeError(32, "Broken pipe")
        runner = ProcessRunner(settings)

        with pytest.raises(CredentialTransferError) as exc_info:
            runner.feed_credential(process, "hunter2")

        assert "Failed to write password" in str(exc_info.value)
        assert "hunter2" not in str(exc_info.value)
        process.kill.assert_called_once()
        process.stdin.close.assert_called_once()

    @pytest.mark.unit
    def test_custom_elevation_tool(self, settings):
        settings.set('elevation_tool', 'doas')
        assert ProcessRunner(settings).elevation_tool == "doas"


class TestHelperScript:
    """Tests for the short-lived AUR helper script"""

    @pytest.mark.security
    def test_script_is_owner_only_and_removed(self, settings, tmp_path):
        runner = ProcessRunner(settings)

        with runner.helper_script("install_foo", ['yay', '-S', '--noconfirm', 'foo'], "hunter2") as path:
            assert os.path.dirname(path) == str(tmp_path)
            assert os.path.basename(path) == "archstore_install_foo.sh"
            assert stat.S_IMODE(os.stat(path).st_mode) == 0o700
            with open(path, 'r', encoding='utf-8') as f:
                lines = f.read().splitlines()

        assert not os.path.exists(path)
        assert lines == [
            "#!/bin/bash",
            "printf '%s\\n' hunter2 | sudo -S -v",
            "yay -S --noconfirm foo",
        ]

    @pytest.mark.security
    def test_script_quotes_credential_and_arguments(self, settings):
        runner = ProcessRunner(settings)
        credential = "it's $(reboot)"

        with runner.helper_script("update_aur", ['paru', '-Sua', '--noconfirm'], credential) as path:
            with open(path, 'r', encoding='utf-8') as f:
                content = f.read()

        assert f"printf '%s\\n' {shlex.quote(credential)} | sudo -S -v" in content
        assert "$(reboot) |" not in content

    @pytest.mark.security
    def test_script_removed_when_block_raises(self, settings):
        runner = ProcessRunner(settings)

        with pytest.raises(RuntimeError):
            with runner.helper_script("install_foo", ['yay', '-S', 'foo'], "hunter2") as path:
                raise RuntimeError("helper crashed")

        assert not os.path.exists(path)

    @pytest.mark.security
    def test_existing_file_never_receives_credential(self, settings, tmp_path):
        path = script_path_for(str(tmp_path), "install_foo")
        with open(path, 'w', encoding='utf-8') as f:
            f.write("planted\n")
        os.chmod(path, 0o666)
        runner = ProcessRunner(settings)

        with open(path, 'r', encoding='utf-8') as planted:
            with runner.helper_script("install_foo", ['yay', '-S', '--noconfirm', 'foo'], "hunter2") as script:
                assert script == path
                assert stat.S_IMODE(os.stat(script).st_mode) == 0o700
                with open(script, 'r', encoding='utf-8') as f:
                    assert "hunter2" in f.read()
            assert planted.read() == "planted\n"

        assert not os.path.exists(path)

    @pytest.mark.security
    def test_existing_symlink_is_not_followed(self, settings, tmp_path):
        target = tmp_path / "target.txt"
        target.write_text("untouched\n")
        path = script_path_for(str(tmp_path), "install_foo")
        os.symlink(str(target), path)
        runner = ProcessRunner(settings)

        with runner.helper_script("install_foo", ['yay', '-S', 'foo'], "hunter2") as script:
            assert not os.path.islink(script)

        assert target.read_text() == "untouched\n"

    @pytest.mark.security
    def test_unremovable_existing_file_aborts(self, settings, tmp_path):
        path = script_path_for(str(tmp_path), "install_foo")
        with open(path, 'w', encoding='utf-8') as f:
            f.write("planted\n")
        runner = ProcessRunner(settings)

        with patch('archstore.runner.os.unlink', side_effect=PermissionError(1, "Operation not permitted")):
            with pytest.raises(SpawnError) as exc_info:
                with runner.helper_script("install_foo", ['yay', '-S', 'foo'], "hunter2"):
                    pass

        assert "hunter2" not in str(exc_info.value)
        with open(path, 'r', encoding='utf-8') as f:
            assert f.read() == "planted\n"

    @pytest.mark.unit
    def test_failed_removal_is_only_a_warning(self, settings):
        runner = ProcessRunner(settings)

        with patch('archstore.runner.os.remove', side_effect=PermissionError(13, "Permission denied")):
            with runner.helper_script("install_foo", ['yay', '-S', 'foo'], "hunter2") as path:
                pass

        assert "Could not remove helper script" in runner.logger.read_log_file()
        os.unlink(path)

    @pytest.mark.unit
    def test_unwritable_directory_raises_spawn_error(self, settings, tmp_path):
        settings.set('script_dir', str(tmp_path / "missing"))
        runner = ProcessRunner(settings)

        with pytest.raises(SpawnError):
            with runner.helper_script("install_foo", ['yay', '-S', 'foo'], "hunter2"):
                pass

    @pytest.mark.unit
    def test_script_path_flattens_slashes(self):
        assert script_path_for("/tmp", "install_a/b") == os.path.join("/tmp", "archstore_install_a_b.sh")
