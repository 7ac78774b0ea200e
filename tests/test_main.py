# tests/test_main.py
import json
import logging
import pytest
from unittest.mock import patch, MagicMock

from drivescope.exceptions import ScopeViolationError, TransientError
from drivescope.main import build_scoped_drive, main, setup_logging
from drivescope.operations import ScopedDrive
from drivescope.storage.dto import ListedNode, Node


@pytest.fixture
def mock_drive():
    with patch("drivescope.main.build_scoped_drive") as mock_build, patch(
        "drivescope.main.setup_logging"
    ):
        yield mock_build.return_value


@patch("drivescope.main.logging.FileHandler")
def test_setup_logging_configures_root_logger(MockFileHandler, mock_settings):
    mock_settings.LOG_LEVEL = "debug"
    root_logger = logging.getLogger()
    saved_handlers = list(root_logger.handlers)
    saved_level = root_logger.level
    try:
        setup_logging()

        assert root_logger.level == logging.DEBUG
        assert MockFileHandler.return_value in root_logger.handlers
        MockFileHandler.assert_called_once_with(mock_settings.LOG_FILE)
        assert logging.getLogger("googleapiclient").level == logging.WARNING
    finally:
        for handler in list(root_logger.handlers):
            root_logger.removeHandler(handler)
        for handler in saved_handlers:
            root_logger.addHandler(handler)
        root_logger.setLevel(saved_level)


@patch("drivescope.main.GoogleDriveClient")
@patch("drivescope.main.CredentialProvider")
def test_build_scoped_drive(MockProvider, MockClient, mock_settings):
    """Ensures the Drive client is built from the injected credential provider."""
    drive = build_scoped_drive(mock_settings)

    MockProvider.from_settings.assert_called_once_with(mock_settings)
    provider = MockProvider.from_settings.return_value
    provider.on_token_refresh.assert_called_once()
    MockClient.assert_called_once_with(provider)
    assert isinstance(drive, ScopedDrive)
    assert drive.storage is MockClient.return_value
    assert drive.root_resolver.folder_name == mock_settings.DRIVE_FOLDER_NAME


def test_ls_prints_listing(mock_drive, capsys):
    mock_drive.list_scoped.return_value = [
        ListedNode(node=Node(id="a", name="A", mime_type="text/plain"), depth=0)
    ]

    exit_code = main(["ls", "--parent", "folder-id", "--depth", "2"])

    assert exit_code == 0
    mock_drive.list_scoped.assert_called_once_with("folder-id", 2)
    output = json.loads(capsys.readouterr().out)
    assert output["files"][0]["id"] == "a"
    assert output["files"][0]["depth"] == 0


def test_search_with_content(mock_drive, capsys):
    mock_drive.search_scoped.return_value = [Node(id="r", name="report")]

    exit_code = main(["search", "report", "--content"])

    assert exit_code == 0
    mock_drive.search_scoped.assert_called_once_with("report", include_content=True)
    assert json.loads(capsys.readouterr().out)["files"][0]["name"] == "report"


def test_scope_violation_exits_with_error(mock_drive):
    mock_drive.list_scoped.side_effect = ScopeViolationError("folder-id")

    assert main(["ls", "--parent", "folder-id"]) == 1


def test_transient_error_exits_with_error(mock_drive):
    mock_drive.search_scoped.side_effect = TransientError("quota exceeded")

    assert main(["search", "report"]) == 1


@patch("drivescope.main.setup_logging")
@patch("drivescope.main.CredentialProvider")
def test_auth_url(MockProvider, mock_setup_logging, capsys):
    MockProvider.from_settings.return_value.authorization_url.return_value = "https://consent"

    assert main(["auth-url"]) == 0
    assert capsys.readouterr().out.strip() == "https://consent"


@patch("drivescope.main.setup_logging")
@patch("drivescope.main.build_scoped_drive")
@patch("drivescope.main.CredentialProvider")
def test_auth_code_stores_tokens_and_resolves_root(
    MockProvider, mock_build, mock_setup_logging, mock_settings, capsys
):
    provider = MockProvider.from_settings.return_value
    mock_build.return_value.resolve_root.return_value = "root-id"

    assert main(["auth-code", "the-code"]) == 0
    provider.exchange_auth_code.assert_called_once_with("the-code")
    mock_build.assert_called_once_with(mock_settings, provider)
    assert "root-id" in capsys.readouterr().out


@patch("drivescope.server.create_server")
def test_serve_runs_mcp_server(mock_create_server, mock_drive):
    assert main(["serve"]) == 0

    mock_create_server.assert_called_once_with(mock_drive)
    mock_create_server.return_value.run.assert_called_once()
