# main.py
import argparse
import json
import logging
from typing import List, Optional

from .config import get_settings
from .exceptions import PermanentError, TransientError
from .gdrive import GoogleDriveClient
from .gdrive_auth import CredentialProvider
from .operations import ScopedDrive


def setup_logging():
    """Configures logging to file and console explicitly."""
    settings = get_settings()
    log_level_name = settings.LOG_LEVEL.upper()

    # Get the root logger
    root_logger = logging.getLogger()
    root_logger.setLevel(log_level_name)

    # Clear any existing handlers to prevent duplicate logs on re-runs or implicit configs
    for handler in list(root_logger.handlers):
        root_logger.removeHandler(handler)

    formatter = logging.Formatter(
        "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    )

    # StreamHandler writes to stderr, which keeps stdout free for the MCP stdio transport
    stream_handler = logging.StreamHandler()
    stream_handler.setFormatter(formatter)
    root_logger.addHandler(stream_handler)

    # Add FileHandler
    try:
        file_handler = logging.FileHandler(settings.LOG_FILE)
        file_handler.setFormatter(formatter)
        root_logger.addHandler(file_handler)
    except IOError as e:
        # Log to console if file logging fails (e.g., permissions)
        root_logger.error(f"Failed to set up file logging to {settings.LOG_FILE}: {e}")

    # Reducing "noise" from third-party libraries
    logging.getLogger("urllib3").setLevel(logging.WARNING)
    logging.getLogger("googleapiclient").setLevel(logging.WARNING)
    logging.getLogger("mcp").setLevel(logging.WARNING)


def build_scoped_drive(settings, credential_provider: Optional[CredentialProvider] = None) -> ScopedDrive:
    """Wires the Drive client and the sandbox layers together."""
    provider = credential_provider or CredentialProvider.from_settings(settings)
    provider.on_token_refresh(lambda tokens: logging.info("Google access token refreshed."))
    storage = GoogleDriveClient(provider)
    return ScopedDrive.from_settings(storage, settings)


def _print_json(data):
    print(json.dumps(data, indent=2))


def _cmd_auth_url(settings, args):
    print(CredentialProvider.from_settings(settings).authorization_url())


def _cmd_auth_code(settings, args):
    provider = CredentialProvider.from_settings(settings)
    provider.exchange_auth_code(args.code)
    root_id = build_scoped_drive(settings, provider).resolve_root()
    print(f"Authentication successful. Sandbox folder ID: {root_id}")


def _cmd_ls(settings, args):
    drive = build_scoped_drive(settings)
    listing = drive.list_scoped(args.parent, args.depth)
    _print_json({"files": [item.to_api() for item in listing]})


def _cmd_search(settings, args):
    drive = build_scoped_drive(settings)
    found = drive.search_scoped(args.query, include_content=args.content)
    _print_json({"files": [node.to_api() for node in found]})


def _cmd_serve(settings, args):
    from .server import create_server

    drive = build_scoped_drive(settings)
    logging.info(f"Starting MCP server for sandbox folder '{settings.DRIVE_FOLDER_NAME}'.")
    create_server(drive).run()


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Google Drive access confined to a single sandbox folder."
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    auth_url = subparsers.add_parser("auth-url", help="Print the Google consent URL.")
    auth_url.set_defaults(handler=_cmd_auth_url)

    auth_code = subparsers.add_parser(
        "auth-code", help="Exchange an authorization code and store the tokens."
    )
    auth_code.add_argument("code", help="The code from the OAuth redirect URL.")
    auth_code.set_defaults(handler=_cmd_auth_code)

    ls = subparsers.add_parser("ls", help="List the sandbox folder breadth-first.")
    ls.add_argument("--parent", default=None, help="Folder ID to start from.")
    ls.add_argument("--depth", type=int, default=None, help="Folder levels to descend.")
    ls.set_defaults(handler=_cmd_ls)

    search = subparsers.add_parser("search", help="Search the sandbox folder.")
    search.add_argument("query")
    search.add_argument(
        "--content", action="store_true", help="Also search inside text files."
    )
    search.set_defaults(handler=_cmd_search)

    serve = subparsers.add_parser("serve", help="Run the MCP server on stdio.")
    serve.set_defaults(handler=_cmd_serve)
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    setup_logging()
    settings = get_settings()

    try:
        args.handler(settings, args)
    except (PermanentError, ValueError) as e:
        logging.critical(f"{args.command} failed: {e}")
        return 1
    except TransientError as e:
        logging.warning(f"{args.command} failed with a temporary error, try again: {e}")
        return 1
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
