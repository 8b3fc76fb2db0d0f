# main.py
import argparse
import logging
import sys
from pathlib import Path
from typing import Optional

from .config import Settings, get_settings
from .exceptions import StorageError
from .gdrive import GoogleDriveTransferManager
from .gdrive_auth import GoogleDriveOAuthGenerator
from .storage.dto import ProvisionedLayout, RemoteFile, RemoteFileCategory


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

    stream_handler = logging.StreamHandler()
    stream_handler.setFormatter(formatter)
    root_logger.addHandler(stream_handler)

    try:
        file_handler = logging.FileHandler(settings.LOG_FILE)
        file_handler.setFormatter(formatter)
        root_logger.addHandler(file_handler)
    except OSError as e:
        # Log to console if file logging fails (e.g., permissions)
        root_logger.error(f"Failed to set up file logging to {settings.LOG_FILE}: {e}")

    # Reducing "noise" from third-party libraries
    logging.getLogger("urllib3").setLevel(logging.WARNING)
    logging.getLogger("googleapiclient").setLevel(logging.WARNING)


def initialize_transfer_manager(settings: Settings) -> Optional[GoogleDriveTransferManager]:
    """
    Builds the transfer manager from the settings and the saved layout.
    Returns None if no refresh token is available or the client cannot be created.
    """
    if not settings.GDRIVE_REFRESH_TOKEN:
        logging.critical("No Google Drive refresh token found. Run the 'auth' command first.")
        return None

    layout = ProvisionedLayout.load(settings.LAYOUT_PATH, settings.GDRIVE_ROOT_PATH)
    try:
        return GoogleDriveTransferManager(
            client_id=settings.GDRIVE_CLIENT_ID,
            client_secret=settings.GDRIVE_CLIENT_SECRET,
            refresh_token=settings.GDRIVE_REFRESH_TOKEN,
            layout=layout,
        )
    except Exception as e:
        logging.error(f"Failed to initialize Google Drive client. Error: {e}", exc_info=True)
        return None


def run_auth(settings: Settings) -> int:
    generator = GoogleDriveOAuthGenerator(settings.GDRIVE_CLIENT_ID, settings.GDRIVE_CLIENT_SECRET)
    print("--- Google Drive Authorization ---")
    print(f"1. Go to: {generator.generate_auth_url()}")
    print("2. Click 'Allow' (you might have to log in first).")
    code = input("3. Enter the authorization code here: ").strip()

    refresh_token = generator.check_token(code)
    settings.TOKEN_FILE.write_text(refresh_token)
    print(f"Token saved to {settings.TOKEN_FILE}")
    return 0


def run_command(manager: GoogleDriveTransferManager, args) -> int:
    if args.command == "init":
        manager.init(args.create)
        logging.info(f"Repository folders ready under '{manager.layout.root_path}'.")

    elif args.command == "test":
        print(f"target exists:     {manager.test_target_exists()}")
        print(f"target can write:  {manager.test_target_can_write()}")
        print(f"target can create: {manager.test_target_can_create()}")
        print(f"repo file exists:  {manager.test_repo_file_exists()}")

    elif args.command == "ls":
        for name in sorted(manager.list(args.category)):
            print(name)

    elif args.command == "upload":
        manager.upload(args.local, RemoteFile(category=args.category, name=args.name))

    elif args.command == "download":
        manager.download(RemoteFile(category=args.category, name=args.name), args.local)

    elif args.command == "mv":
        manager.move(
            RemoteFile(category=args.source_category, name=args.source_name),
            RemoteFile(category=args.target_category, name=args.target_name),
        )

    elif args.command == "rm":
        manager.delete(RemoteFile(category=args.category, name=args.name))

    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Store repository files in a Google Drive folder."
    )
    subparsers = parser.add_subparsers(dest="command", required=True)
    category = {
        "type": RemoteFileCategory,
        "metavar": "CATEGORY",
        "help": ", ".join(c.value for c in RemoteFileCategory),
    }

    subparsers.add_parser("auth", help="Obtain a refresh token and save it to the token file.")

    init_parser = subparsers.add_parser("init", help="Create the repository folders.")
    init_parser.add_argument("--create", action="store_true", help="Create the root folder if it is missing.")

    subparsers.add_parser("test", help="Check that the target exists and is writable.")

    ls_parser = subparsers.add_parser("ls", help="List the files of a category.")
    ls_parser.add_argument("category", **category)

    upload_parser = subparsers.add_parser("upload", help="Upload a local file.")
    upload_parser.add_argument("local", type=Path)
    upload_parser.add_argument("category", **category)
    upload_parser.add_argument("name")

    download_parser = subparsers.add_parser("download", help="Download a remote file.")
    download_parser.add_argument("category", **category)
    download_parser.add_argument("name")
    download_parser.add_argument("local", type=Path)

    mv_parser = subparsers.add_parser("mv", help="Rename or move a remote file.")
    mv_parser.add_argument("source_category", **category)
    mv_parser.add_argument("source_name")
    mv_parser.add_argument("target_category", **category)
    mv_parser.add_argument("target_name")

    rm_parser = subparsers.add_parser("rm", help="Delete a remote file.")
    rm_parser.add_argument("category", **category)
    rm_parser.add_argument("name")

    return parser


def main(argv=None) -> int:
    args = build_parser().parse_args(argv)

    setup_logging()
    settings = get_settings()

    if args.command == "auth":
        try:
            return run_auth(settings)
        except StorageError as e:
            logging.error(f"Authorization failed. Error: {e}")
            return 1

    manager = initialize_transfer_manager(settings)
    if manager is None:
        return 1

    try:
        return run_command(manager, args)
    except (StorageError, ValueError) as e:
        logging.error(f"Command '{args.command}' failed. Error: {e}", exc_info=True)
        return 1
    finally:
        # Persist any folder IDs discovered or created during the command.
        manager.layout.save(settings.LAYOUT_PATH)


if __name__ == "__main__":
    sys.exit(main())
