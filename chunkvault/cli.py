"""Command-line interface for chunkvault."""

from __future__ import annotations

import argparse
import asyncio
import logging
import sys
from pathlib import Path
from typing import Any, Awaitable, Callable, List, Optional, Tuple, TypeVar

from colorama import Fore, Style, init as colorama_init
from tqdm import tqdm

from .config import Config
from .discord_client import DiscordGateway
from .object_store import ObjectStore
from .utils import ConfigError, DecryptionFailure, StorageError, TransportError, format_bytes, setup_logging

T = TypeVar("T")

logger = logging.getLogger(__name__)


def _cli_header() -> str:
    return (
        f"{Fore.CYAN}chunkvault{Style.RESET_ALL}: "
        f"{Fore.WHITE}encrypted file storage in a Discord channel.{Style.RESET_ALL}\n"
    )


def _command_showcase() -> List[Tuple[str, str, str]]:
    return [
        ("upload <path>", "Upload a file", "Encrypt and post as chunks."),
        ("list", "List files", "Show files stored in the channel."),
        ("info <file_id>", "File details", "Inspect one file's metadata."),
        ("download <file_id> <path>", "Download file", "Fetch and decrypt."),
        ("delete <file_id>", "Delete file", "Remove all of its messages."),
        ("share <file_id>", "Share code", "Print a portable share code."),
        ("fetch <code> <path>", "Fetch shared", "Download from a share code."),
    ]


def _print_command_help(title: str) -> None:
    print(_cli_header())
    print(title)
    print("Usage: python main.py <command> [options]")
    print("\nAvailable commands:\n")
    for command, label, usecase in _command_showcase():
        print(f"  {command:<26} - {label} ({usecase})")
    print("\nExamples:")
    print("  python main.py upload ./report.pdf")
    print("  python main.py download lq3x9k2abcde ./downloads")
    print("  python main.py delete lq3x9k2abcde --yes")
    print("")


class _FriendlyArgumentParser(argparse.ArgumentParser):
    def error(self, message: str) -> None:
        _print_command_help(f"{Fore.RED}Error:{Style.RESET_ALL} {message}")
        print(f"{Fore.YELLOW}Tip:{Style.RESET_ALL} Run `python main.py help` for examples.")
        raise SystemExit(2)


def parse_arguments(argv: Optional[List[str]] = None) -> argparse.Namespace:
    """
    Parse command-line arguments.

    Returns:
        Parsed arguments namespace.
    """
    common = argparse.ArgumentParser(add_help=False)
    common.add_argument("--channel", type=str, help="Channel id (default: STORAGE_CHANNEL_ID)")
    common.add_argument("--key", type=str, help="Encryption passphrase (default: ENCRYPTION_KEY)")
    common.add_argument("--verbose", action="store_true", help="Enable debug logging")

    parser = _FriendlyArgumentParser(description="chunkvault CLI")
    subparsers = parser.add_subparsers(dest="command")

    upload_parser = subparsers.add_parser("upload", parents=[common], help="Upload a file")
    upload_parser.add_argument("path", help="Path to file")
    upload_parser.add_argument("--type", dest="media_type", help="Media type (default: guessed)")
    upload_parser.add_argument("--name", help="Stored name (default: file name)")

    subparsers.add_parser("list", parents=[common], help="List stored files")

    info_parser = subparsers.add_parser("info", parents=[common], help="File details")
    info_parser.add_argument("file_id", help="File ID")

    download_parser = subparsers.add_parser("download", parents=[common], help="Download a file")
    download_parser.add_argument("file_id", help="File ID")
    download_parser.add_argument("path", help="Destination file or directory")

    delete_parser = subparsers.add_parser("delete", parents=[common], help="Delete a file")
    delete_parser.add_argument("file_id", help="File ID")
    delete_parser.add_argument("--yes", action="store_true", help="Skip confirmation")

    share_parser = subparsers.add_parser("share", parents=[common], help="Print a share code")
    share_parser.add_argument("file_id", help="File ID")

    fetch_parser = subparsers.add_parser("fetch", parents=[common], help="Download from a share code")
    fetch_parser.add_argument("code", help="Share code")
    fetch_parser.add_argument("path", help="Destination file or directory")

    subparsers.add_parser("help", help="Show help and usage examples")

    return parser.parse_args(argv)


def _channel(args: argparse.Namespace, config: Config) -> str:
    channel_id = args.channel or config.storage_channel_id
    if not channel_id:
        raise ConfigError("No channel given. Pass --channel or set STORAGE_CHANNEL_ID.")
    return channel_id


def _key(args: argparse.Namespace, config: Config) -> str:
    return args.key or config.encryption_key


def _cdn_config() -> Config:
    """Configuration for commands that only touch the CDN and need no token."""
    try:
        return Config.get_instance()
    except ConfigError as exc:
        logger.debug("Using defaults for CDN-only command: %s", exc)
        return Config(discord_bot_token="", storage_channel_id=None, encryption_key="")


def _run(config: Config, work: Callable[[ObjectStore], Awaitable[T]]) -> T:
    async def _main() -> T:
        async with DiscordGateway(
            config.discord_bot_token,
            api_base=config.api_base,
            max_attempts=config.max_retry_attempts,
            backoff=config.retry_backoff,
        ) as gateway:
            store = ObjectStore(
                gateway,
                chunk_size=config.max_chunk_size,
                window_size=config.window_size,
            )
            return await work(store)

    return asyncio.run(_main())


def _progress_bar(desc: str) -> Tuple[Any, Callable[[int, int], None]]:
    progress = tqdm(total=0, desc=desc, unit="chunk")

    def _progress(done: int, total: int) -> None:
        progress.n = done
        progress.total = total
        progress.refresh()

    return progress, _progress


def command_upload(args: argparse.Namespace, config: Config) -> None:
    """
    Handle upload command.
    """
    source = Path(args.path).expanduser().resolve()
    if not source.is_file():
        raise StorageError(f"File not found: {source}")
    channel_id = _channel(args, config)
    name = args.name or source.name
    print(f"\n📤 Uploading {name} ({format_bytes(source.stat().st_size)})")

    progress, callback = _progress_bar("Uploading")
    try:
        file_id = _run(
            config,
            lambda store: store.put(
                source, name, args.media_type, _key(args, config), channel_id, callback
            ),
        )
    finally:
        progress.close()
    print(f"{Fore.GREEN}✅ Upload complete! File ID: {file_id}{Style.RESET_ALL}")


def command_list(args: argparse.Namespace, config: Config) -> None:
    """
    Handle list command.
    """
    channel_id = _channel(args, config)
    files = _run(config, lambda store: store.list(channel_id))
    if not files:
        print("No files found. Upload something with `python main.py upload <path>`.")
        return
    print(f"{Fore.CYAN}Stored files:{Style.RESET_ALL}")
    print(f"{'File ID':<16}  {'Name':<32}  {'Size':>12}  {'Chunks':>6}")
    print("-" * 72)
    for item in files:
        name = item.name
        if len(name) > 32:
            name = f"{name[:29]}..."
        chunks = str(item.chunk_count)
        if item.chunk_count == 0:
            chunks = f"{Fore.RED}{chunks:>6}{Style.RESET_ALL}"
        print(f"{item.id:<16}  {name:<32}  {format_bytes(item.size):>12}  {chunks:>6}")


def command_info(args: argparse.Namespace, config: Config) -> None:
    """
    Handle info command.
    """
    channel_id = _channel(args, config)
    files = _run(config, lambda store: store.list(channel_id))
    match = next((item for item in files if item.id == args.file_id), None)
    if match is None:
        print("File not found. Double-check the file ID with `python main.py list`.")
        return
    print(f"{Fore.CYAN}File details{Style.RESET_ALL}")
    print(f"File ID: {match.id}")
    print(f"Name: {match.name}")
    print(f"Type: {match.media_type}")
    print(f"Size: {format_bytes(match.size)}")
    print(f"Chunks: {match.chunk_count}")


def command_download(args: argparse.Namespace, config: Config) -> None:
    """
    Handle download command.
    """
    channel_id = _channel(args, config)
    destination = Path(args.path).expanduser().resolve()
    progress, callback = _progress_bar("Downloading")
    try:
        restored = _run(
            config,
            lambda store: store.download(
                args.file_id, channel_id, _key(args, config), destination, callback
            ),
        )
    finally:
        progress.close()
    print(f"{Fore.GREEN}✅ Restored to: {restored}{Style.RESET_ALL}")


def command_delete(args: argparse.Namespace, config: Config) -> int:
    """
    Handle delete command.
    """
    channel_id = _channel(args, config)
    if not args.yes:
        confirm = input(
            f"Delete file {args.file_id} and all its chunks from Discord? [y/N]: "
        ).strip().lower()
        if confirm != "y":
            print("Delete cancelled.")
            return 0
    report = _run(config, lambda store: store.delete(args.file_id, channel_id))
    counts = report.counts
    print(
        f"Bulk deleted: {counts['bulk_deleted']}  "
        f"Individually deleted: {counts['individually_deleted']}  "
        f"Failed: {counts['failed']}"
    )
    if not report.ok:
        print(f"{Fore.RED}Some messages could not be deleted:{Style.RESET_ALL}")
        for message_id, reason in report.failed.items():
            print(f"  {message_id}: {reason}")
        print(f"{Fore.YELLOW}Tip:{Style.RESET_ALL} run the delete again to retry them.")
        return 1
    print(f"{Fore.YELLOW}Deleted file {args.file_id}.{Style.RESET_ALL}")
    return 0


def command_share(args: argparse.Namespace, config: Config) -> None:
    """
    Handle share command.
    """
    channel_id = _channel(args, config)
    code = _run(config, lambda store: store.share(args.file_id, channel_id, _key(args, config)))
    print(f"{Fore.YELLOW}Anyone with this code can decrypt the file.{Style.RESET_ALL}")
    print(code)


def command_fetch(args: argparse.Namespace, config: Config) -> None:
    """
    Handle fetch command.
    """
    destination = Path(args.path).expanduser().resolve()
    progress, callback = _progress_bar("Downloading")
    try:
        restored = _run(config, lambda store: store.fetch_shared_to(args.code, destination, callback))
    finally:
        progress.close()
    print(f"{Fore.GREEN}✅ Restored to: {restored}{Style.RESET_ALL}")


COMMANDS = {
    "upload": command_upload,
    "list": command_list,
    "info": command_info,
    "download": command_download,
    "delete": command_delete,
    "share": command_share,
    "fetch": command_fetch,
}


def main(argv: Optional[List[str]] = None) -> int:
    """
    CLI entry point.
    """
    colorama_init()
    args = parse_arguments(argv)

    if not args.command:
        _print_command_help("Choose a command to continue.")
        return 0
    if args.command == "help":
        _print_command_help("chunkvault CLI Help")
        return 0

    setup_logging(logging.DEBUG if args.verbose else logging.WARNING)
    try:
        config = _cdn_config() if args.command == "fetch" else Config.get_instance()
        return COMMANDS[args.command](args, config) or 0
    except DecryptionFailure as exc:
        print(f"{Fore.RED}Error: {exc} Check your encryption key.{Style.RESET_ALL}")
    except TransportError as exc:
        print(f"{Fore.RED}Error: {exc} Check your connection and bot token.{Style.RESET_ALL}")
    except StorageError as exc:
        print(f"{Fore.RED}Error: {exc}{Style.RESET_ALL}")
    return 1


if __name__ == "__main__":
    sys.exit(main())
