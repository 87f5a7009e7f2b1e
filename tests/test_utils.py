"""Tests for ignition.utils module."""
import logging
import pytest
from unittest.mock import patch, MagicMock
from ignition import utils


def test_command_exists_when_command_found():
    """Test command_exists returns True when command is found."""
    with patch('shutil.which', return_value='/usr/bin/docker'):
        assert utils.command_exists('docker') is True


def test_command_exists_when_command_not_found():
    """Test command_exists returns False when command not found."""
    with patch('shutil.which', return_value=None):
        assert utils.command_exists('nonexistent') is False


def test_is_root_when_root():
    """Test is_root returns True when running as root."""
    with patch('os.geteuid', return_value=0):
        assert utils.is_root() is True


def test_is_root_when_not_root():
    """Test is_root returns False when not running as root."""
    with patch('os.geteuid', return_value=1000):
        assert utils.is_root() is False


@patch('ignition.utils.sh.Command')
def test_run_returns_command_output(mock_command):
    """Test run resolves the command through sh and returns stdout as text."""
    mock_command.return_value.return_value = "Hit:1 http://deb.debian.org\n"

    output = utils.run("apt", "update")

    mock_command.assert_called_once_with("apt")
    mock_command.return_value.assert_called_once_with("update")
    assert output == "Hit:1 http://deb.debian.org\n"


@patch('ignition.utils.sh.Command')
def test_run_passes_sh_keyword_arguments(mock_command):
    """Test run forwards sh special arguments like _in."""
    mock_command.return_value.return_value = ""

    utils.run("chpasswd", _in="admin:secret\n")

    mock_command.return_value.assert_called_once_with(_in="admin:secret\n")


def test_log_info(capsys):
    """Test log_info outputs a timestamped message."""
    utils.log_info("Test message")
    captured = capsys.readouterr()
    assert captured.out.startswith("[")
    assert captured.out.endswith("] Test message\n")


def test_log_action(capsys):
    """Test log_action outputs indented message."""
    utils.log_action("Installing package")
    captured = capsys.readouterr()
    assert "  -> Installing package\n" == captured.out


@pytest.mark.parametrize("log", [utils.log_success, utils.log_warning, utils.log_error])
def test_colored_loggers_write_plain_text_when_captured(log, capsys):
    """Test colors are stripped when stdout is not a terminal."""
    log("Something happened")
    captured = capsys.readouterr()
    assert "\x1b[" not in captured.out
    assert "] Something happened\n" in captured.out


@patch('ignition.utils.logging.basicConfig')
def test_setup_logging_verbose(mock_basic_config):
    """Test setup_logging in verbose mode shows INFO records."""
    utils.setup_logging(verbose=True)
    assert mock_basic_config.call_args.kwargs["level"] == logging.INFO


@patch('ignition.utils.logging.basicConfig')
def test_setup_logging_normal(mock_basic_config):
    """Test setup_logging in normal mode only shows warnings."""
    utils.setup_logging(verbose=False)
    assert mock_basic_config.call_args.kwargs["level"] == logging.WARNING
