from __future__ import annotations

import argparse
import logging
import sys
from contextlib import nullcontext
from pathlib import Path
from signal import SIGINT, signal
from typing import TYPE_CHECKING

from dotenv import load_dotenv

from capsync.app import migrate_duplicate_capability, sync_capabilities_from_file
from capsync.config import configure_logging
from capsync.domain.execution_context import ExecutionContext, execution_scope

if TYPE_CHECKING:
    from collections.abc import Sequence
    from contextlib import AbstractContextManager
    from types import FrameType

log = logging.getLogger(__name__)


def _parse_args(argv: Sequence[str]) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Maintain capabilities and their assignments")
    parser.add_argument(
        "--tenant",
        type=str,
        help="Tenant whose cached user permissions are evicted after changes",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    migrate = subparsers.add_parser(
        "migrate-duplicate",
        help="Move all assignments of a duplicated capability onto its replacement",
    )
    migrate.add_argument("old_name", type=str, help="Name of the capability to remove")
    migrate.add_argument("new_name", type=str, help="Name of the capability to keep")

    sync = subparsers.add_parser(
        "sync-capabilities",
        help="Register the capabilities described by a module descriptor file",
    )
    sync.add_argument("descriptor", type=Path, help="Path to the descriptor JSON document")

    return parser.parse_args(list(argv))


def _validate(args: argparse.Namespace) -> None:
    if args.command == "migrate-duplicate":
        if not args.old_name.strip() or not args.new_name.strip():
            raise ValueError("Capability names must not be blank")
        if args.old_name.strip() == args.new_name.strip():
            raise ValueError("Old and new capability names must differ")
    elif args.command == "sync-capabilities" and not args.descriptor.is_file():
        raise ValueError(f"Descriptor file not found: {args.descriptor}")
    if args.tenant is not None and not args.tenant.strip():
        raise ValueError("Tenant must not be blank")


def _scope(args: argparse.Namespace) -> AbstractContextManager[object]:
    if args.tenant is None:
        return nullcontext()
    return execution_scope(ExecutionContext(tenant_id=args.tenant.strip()))


def main(argv: Sequence[str] | None = None) -> None:
    """Main application entry point."""
    load_dotenv()
    configure_logging()
    args_list = list(argv) if argv is not None else list(sys.argv[1:])
    try:
        parsed_args = _parse_args(args_list)
        _validate(parsed_args)
    except ValueError:
        log.exception("CLI validation error")
        sys.exit(2)

    try:
        with _scope(parsed_args):
            if parsed_args.command == "migrate-duplicate":
                report = migrate_duplicate_capability(parsed_args.old_name, parsed_args.new_name)
                log.info(
                    "Migration %s -> %s: %s",
                    report.old_name,
                    report.new_name,
                    report.status,
                )
            elif parsed_args.command == "sync-capabilities":
                result = sync_capabilities_from_file(parsed_args.descriptor)
                log.info(
                    "Capability sync finished: created=%s, updated=%s, deleted=%s",
                    len(result.created),
                    len(result.updated),
                    len(result.deleted),
                )
            else:
                raise ValueError(f"Unsupported command: {parsed_args.command}")  # noqa: TRY301
    except Exception:
        log.exception("Fatal error during %s", parsed_args.command)
        sys.exit(1)


def sigint_handler(_signal_received: int, _frame: FrameType | None) -> None:
    """Handle SIGINT (Ctrl+C) gracefully."""
    log.info("Closed by user (Ctrl+C)")
    sys.exit(0)


if __name__ == "__main__":
    signal(SIGINT, sigint_handler)
    main()
