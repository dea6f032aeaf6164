#!/usr/bin/env python3
"""
Inspect and manage the artifact bucket from the command line.

Uses the same settings as the media server (STORAGE_* environment
variables or .env), so it is a quick way to check credentials after a
rotation or to push a recording by hand.

Usage:
    python scripts/storage_admin.py list recordings/
    python scripts/storage_admin.py exists recordings/video123.mp4
    python scripts/storage_admin.py delete recordings/video123.mp4
    python scripts/storage_admin.py upload recordings/video123.mp4 ./video123.mp4 --delete-local
    python scripts/storage_admin.py save ./video123.mp4 recordings
"""

import logging
import sys
import threading
from pathlib import Path

# Add project root to path so we can import our modules
sys.path.insert(0, str(Path(__file__).parent.parent))

from dotenv import load_dotenv

# Load environment variables
load_dotenv()

from media_storage.config.settings import get_settings
from media_storage.core.models import UploadTask
from media_storage.infrastructure.storage.client import StorageError, create_storage_client

logger = logging.getLogger("storage_admin")


class WaitingCallback:
    """Blocks the script until the upload reports back."""

    def __init__(self) -> None:
        self.done = threading.Event()
        self.succeeded = False

    def on_success(self, task: UploadTask) -> None:
        self.succeeded = True
        print(f"Uploaded {task.file_name} -> {task.key}")
        self.done.set()

    def on_failure(self, task: UploadTask, cause: BaseException) -> None:
        print(f"Upload of {task.file_name} -> {task.key} failed: {cause}")
        self.done.set()


def run_upload(client, args) -> int:
    callback = WaitingCallback()

    if args.command == 'save':
        task = client.save(args.file, args.type, callback=callback)
    else:
        task = client.upload(args.key, args.file, args.delete_local, callback=callback)

    if task is None:
        print("Storage is disabled; nothing uploaded")
        return 0

    callback.done.wait()
    return 0 if callback.succeeded else 1


def main():
    import argparse

    parser = argparse.ArgumentParser(description='Manage the media artifact bucket')
    subparsers = parser.add_subparsers(dest='command', required=True)

    list_parser = subparsers.add_parser('list', help='List keys under a prefix')
    list_parser.add_argument('prefix', nargs='?', default='')

    exists_parser = subparsers.add_parser('exists', help='Check whether a key exists')
    exists_parser.add_argument('key')

    delete_parser = subparsers.add_parser('delete', help='Delete a key')
    delete_parser.add_argument('key')

    upload_parser = subparsers.add_parser('upload', help='Upload a file under an explicit key')
    upload_parser.add_argument('key')
    upload_parser.add_argument('file')
    upload_parser.add_argument('--delete-local', action='store_true', help='Remove the local file once uploaded')

    save_parser = subparsers.add_parser('save', help='Upload a file under TYPE/<file name>')
    save_parser.add_argument('file')
    save_parser.add_argument('type')

    args = parser.parse_args()

    settings = get_settings()
    logging.basicConfig(
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        level=getattr(logging, settings.log_level.upper(), logging.INFO),
    )

    missing = settings.validate_required_fields()
    if missing:
        print(f"Missing required configuration: {', '.join(missing)}")
        sys.exit(2)

    client = create_storage_client(
        config=settings.storage_config(),
        mock_mode=settings.storage_mock_mode,
    )

    try:
        if args.command == 'list':
            for key in client.list_objects(args.prefix):
                print(key)
            exit_code = 0
        elif args.command == 'exists':
            found = client.exists(args.key)
            print("yes" if found else "no")
            exit_code = 0 if found else 1
        elif args.command == 'delete':
            client.delete(args.key)
            exit_code = 0
        else:
            exit_code = run_upload(client, args)
    except StorageError as e:
        logger.error("Storage command failed", extra={"command": args.command, "error": str(e)})
        print(f"Error: {e}")
        exit_code = 1
    finally:
        client.shutdown(wait=True)

    sys.exit(exit_code)


if __name__ == '__main__':
    main()
