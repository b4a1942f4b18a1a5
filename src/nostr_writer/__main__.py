"""CLI entry point for nostr-writer.

Examples:
    ```bash
    python -m nostr_writer publish posts/hello.md
    python -m nostr_writer download naddr1...
    python -m nostr_writer download npub1... --vault ~/notes
    python -m nostr_writer whoami
    python -m nostr_writer relays --config config/writer.yaml
    ```
"""

import argparse
import asyncio
import sys
from pathlib import Path
from typing import Any

from nostr_writer.core.exceptions import NostrWriterError
from nostr_writer.core.logger import Logger, setup_logging
from nostr_writer.core.metrics import write_metrics
from nostr_writer.core.yaml import load_yaml
from nostr_writer.services.common.configs import WriterConfig
from nostr_writer.services.downloader import BulkDownloadReport
from nostr_writer.services.session import WriterSession


DEFAULT_CONFIG = Path("config") / "writer.yaml"

logger = Logger("cli")


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    """Parse command-line arguments."""
    parser = argparse.ArgumentParser(
        prog="nostr-writer",
        description="Sync markdown documents with Nostr long-form articles",
    )
    parser.add_argument(
        "--config",
        type=Path,
        default=DEFAULT_CONFIG,
        help=f"Config path (default: {DEFAULT_CONFIG})",
    )
    parser.add_argument(
        "--vault",
        type=Path,
        help="Document store root (overrides storage.vault)",
    )
    parser.add_argument(
        "--log-level",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        default="WARNING",
        help="Log level (default: WARNING)",
    )
    parser.add_argument(
        "--log-json",
        action="store_true",
        help="Emit one JSON object per log line",
    )
    parser.add_argument(
        "--metrics-file",
        type=Path,
        help="Write Prometheus metrics to this textfile on exit",
    )

    commands = parser.add_subparsers(dest="command", required=True)
    publish = commands.add_parser("publish", help="Publish or update documents")
    publish.add_argument("paths", nargs="+", help="Vault-relative markdown paths")
    download = commands.add_parser("download", help="Download an article or an author's articles")
    download.add_argument("address", help="naddr, npub, nprofile, hex key or URL embedding one")
    commands.add_parser("whoami", help="Show the active account")
    commands.add_parser("relays", help="Show the resolved publish relays")

    return parser.parse_args(argv)


def load_config(path: Path, vault: Path | None = None) -> WriterConfig:
    """Load the configuration, falling back to defaults when *path* does not exist."""
    data: dict[str, Any] = {}
    if path.exists():
        data = load_yaml(path)
    else:
        logger.warning("config_not_found", path=str(path))
    if vault is not None:
        data.setdefault("storage", {})["vault"] = str(vault)
    return WriterConfig.from_dict(data)


async def _publish(session: WriterSession, paths: list[str]) -> int:
    failures = 0
    for path in paths:
        try:
            report = await session.publisher.publish(path)
        except NostrWriterError as e:
            failures += 1
            print(f"FAILED {path}: {e}")
            continue
        action = "updated" if report.is_update else "published"
        print(f"{action} {path} ({len(report.accepted)}/{len(report.outcomes)} relays)")
        for relay, outcome in report.outcomes.items():
            print(f"  {outcome.status.value:<12} {relay} {outcome.message}".rstrip())
        if report.naddr:
            print(f"  nostr:{report.naddr}")
    return 1 if failures else 0


async def _download(session: WriterSession, address: str) -> int:
    result = await session.downloader.download(address)
    if not isinstance(result, BulkDownloadReport):
        print(f"saved {result.path}")
        return 0
    for saved in result.saved:
        print(f"saved {saved.path}")
    for failure in result.failed:
        print(f"FAILED {failure.identifier or failure.event_id}: {failure.error}")
    print(f"{len(result.saved)}/{result.total} articles saved")
    return 1 if result.failed else 0


async def _whoami(session: WriterSession) -> int:
    await session.load_identity()
    profile = session.profile()
    name = profile.get("display_name") or profile.get("name")
    print(session.npub() + (f" ({name})" if name else ""))
    mailboxes = session.mailboxes
    if mailboxes is not None:
        print(f"  outboxes: {', '.join(mailboxes.outboxes) or '-'}")
        print(f"  inboxes:  {', '.join(mailboxes.inboxes) or '-'}")
    return 0


async def _relays(session: WriterSession) -> int:
    if session.pubkey is not None:
        await session.load_identity()
    for relay in session.selector.publish_relays():
        print(relay)
    return 0


async def run(args: argparse.Namespace) -> int:
    """Run the selected command; returns the process exit code."""
    config = load_config(args.config, args.vault)
    async with WriterSession(config) as session:
        if args.command == "publish":
            if session.pubkey is not None:
                await session.load_identity()
            return await _publish(session, args.paths)
        if args.command == "download":
            return await _download(session, args.address)
        if args.command == "whoami":
            return await _whoami(session)
        return await _relays(session)


async def main(argv: list[str] | None = None) -> int:
    """Main entry point: parse args, configure logging, run the command."""
    args = parse_args(argv)
    setup_logging(args.log_level, json_output=args.log_json)
    try:
        return await run(args)
    except (NostrWriterError, FileNotFoundError) as e:
        logger.error("command_failed", command=args.command, error=str(e))
        print(f"error: {e}", file=sys.stderr)
        return 1
    finally:
        if args.metrics_file is not None:
            write_metrics(args.metrics_file)


def cli() -> None:
    """Synchronous entry point for console_scripts."""
    sys.exit(asyncio.run(main()))


if __name__ == "__main__":
    cli()
