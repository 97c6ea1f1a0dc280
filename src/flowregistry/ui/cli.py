# ruff: noqa: T201

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path
from signal import SIGINT, signal
from typing import TYPE_CHECKING, NoReturn

from dotenv import load_dotenv

from flowregistry.adapters.snapshot_codecs import build_process_group_serializer
from flowregistry.app import build_registry_service
from flowregistry.config import ConfigurationError, configure_logging
from flowregistry.domain.errors import RegistryError, http_status_for
from flowregistry.domain.model import Revision

if TYPE_CHECKING:
    from collections.abc import Callable, Sequence
    from types import FrameType

    from flowregistry.domain.registry_service import RegistryService

log = logging.getLogger(__name__)

DEFAULT_ACTOR = "flowregistry-cli"


def _parse_args(argv: Sequence[str]) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Manage buckets, flows and flow snapshots")
    parser.add_argument(
        "--actor",
        type=str,
        default=DEFAULT_ACTOR,
        help="Identity recorded as the author of changes (default: %(default)s)",
    )
    parser.add_argument("--verbose", "-v", action="store_true", help="Enable debug logging")
    subparsers = parser.add_subparsers(dest="command", required=True)

    bucket = subparsers.add_parser("bucket", help="Bucket commands")
    bucket_sub = bucket.add_subparsers(dest="bucket_command", required=True)
    bucket_create = bucket_sub.add_parser("create", help="Create a bucket")
    bucket_create.add_argument("--name", type=str, required=True, help="Bucket name")
    bucket_create.add_argument("--description", type=str, help="Optional description")
    bucket_create.add_argument(
        "--allow-bundle-redeploy",
        action="store_true",
        help="Allow re-uploading an existing bundle version with new content",
    )
    bucket_sub.add_parser("list", help="List buckets")

    flow = subparsers.add_parser("flow", help="Flow commands")
    flow_sub = flow.add_subparsers(dest="flow_command", required=True)
    flow_create = flow_sub.add_parser("create", help="Create a flow in a bucket")
    flow_create.add_argument("--bucket-id", type=str, required=True, help="Owning bucket id")
    flow_create.add_argument("--name", type=str, required=True, help="Flow name")
    flow_create.add_argument("--description", type=str, help="Optional description")
    flow_list = flow_sub.add_parser("list", help="List flows of a bucket")
    flow_list.add_argument("--bucket-id", type=str, required=True, help="Bucket id")

    snapshot = subparsers.add_parser("snapshot", help="Flow snapshot commands")
    snapshot_sub = snapshot.add_subparsers(dest="snapshot_command", required=True)
    snapshot_import = snapshot_sub.add_parser(
        "import", help="Store a serialized process group as the next snapshot of a flow"
    )
    snapshot_import.add_argument("--flow-id", type=str, required=True, help="Target flow id")
    snapshot_import.add_argument("--file", type=Path, required=True, help="Snapshot file")
    snapshot_import.add_argument("--comments", type=str, help="Snapshot comments")
    snapshot_import.add_argument(
        "--revision",
        type=int,
        help="Flow revision the import is based on (defaults to the current revision)",
    )
    snapshot_export = snapshot_sub.add_parser(
        "export", help="Write a snapshot in the current data model version"
    )
    snapshot_export.add_argument("--flow-id", type=str, required=True, help="Flow id")
    snapshot_export.add_argument(
        "--version", type=int, help="Snapshot version (defaults to the latest)"
    )
    snapshot_export.add_argument(
        "--output", type=Path, help="Destination file (defaults to stdout)"
    )
    snapshot_inspect = snapshot_sub.add_parser(
        "inspect", help="Show the data model version and size of a snapshot file"
    )
    snapshot_inspect.add_argument("--file", type=Path, required=True, help="Snapshot file")

    return parser.parse_args(list(argv))


def _read_file(path: Path) -> bytes:
    try:
        return path.read_bytes()
    except OSError as exc:
        raise ValueError(f"Cannot read {path}: {exc.strerror}") from exc


def _run_bucket(args: argparse.Namespace, service: RegistryService) -> None:
    if args.bucket_command == "create":
        result = service.create_bucket(
            args.name,
            args.actor,
            description=args.description,
            allow_bundle_redeploy=args.allow_bundle_redeploy,
        )
        print(result.entity.id)
        return
    for bucket in service.list_buckets():
        print(f"{bucket.id}\t{bucket.name}")


def _run_flow(args: argparse.Namespace, service: RegistryService) -> None:
    if args.flow_command == "create":
        result = service.create_flow(
            args.bucket_id, args.name, args.actor, description=args.description
        )
        print(result.entity.id)
        return
    for flow in service.list_flows(args.bucket_id):
        print(f"{flow.id}\t{flow.name}")


def _run_snapshot(args: argparse.Namespace, service: RegistryService) -> None:
    serializer = build_process_group_serializer()
    if args.snapshot_command == "import":
        contents = serializer.deserialize(_read_file(args.file))
        if args.revision is None:
            claim = service.get_revision(args.flow_id)
        else:
            claim = Revision(entity_id=args.flow_id, version=args.revision)
        result = service.create_snapshot(claim, args.actor, contents, comments=args.comments)
        log.info(
            "Stored snapshot %s of flow %s at revision %s",
            result.entity.metadata.version,
            args.flow_id,
            result.revision.version,
        )
        print(result.entity.metadata.version)
        return

    version = args.version
    if version is None:
        version = service.get_latest_snapshot(args.flow_id).metadata.version
    payload = service.export_snapshot(args.flow_id, version)
    if args.output is None:
        sys.stdout.buffer.write(payload)
        sys.stdout.buffer.flush()
    else:
        args.output.write_bytes(payload)
        log.info("Wrote snapshot %s of flow %s to %s", version, args.flow_id, args.output)


def _inspect_snapshot(path: Path) -> None:
    serializer = build_process_group_serializer()
    data = _read_file(path)
    stamped = serializer.read_data_model_version(data)
    contents = serializer.deserialize(data)
    print(f"data model version: {stamped}")
    print(f"process group: {contents.identifier} ({contents.name or 'unnamed'})")
    print(f"components: {contents.component_count}")


def main(
    argv: Sequence[str] | None = None,
    *,
    service_factory: Callable[[], RegistryService] = build_registry_service,
) -> None:
    """Main application entry point."""
    args_list = list(argv) if argv is not None else list(sys.argv[1:])
    parsed_args = _parse_args(args_list)
    configure_logging(level=logging.DEBUG if parsed_args.verbose else logging.INFO)

    try:
        if parsed_args.command == "snapshot" and parsed_args.snapshot_command == "inspect":
            _inspect_snapshot(parsed_args.file)
            return

        service = service_factory()
        if parsed_args.command == "bucket":
            _run_bucket(parsed_args, service)
        elif parsed_args.command == "flow":
            _run_flow(parsed_args, service)
        elif parsed_args.command == "snapshot":
            _run_snapshot(parsed_args, service)
        else:
            raise ValueError(f"Unsupported command: {parsed_args.command}")  # noqa: TRY301
    except (RegistryError, ConfigurationError) as exc:
        _fail(exc)
    except ValueError as exc:
        log.error("%s", exc)  # noqa: TRY400
        sys.exit(2)
    except Exception:
        log.exception("Fatal error")
        sys.exit(1)


def _fail(exc: Exception) -> NoReturn:
    if isinstance(exc, RegistryError):
        log.error("%s (status %s)", exc, http_status_for(exc))  # noqa: TRY400
    else:
        log.error("%s", exc)  # noqa: TRY400
    sys.exit(1)


def sigint_handler(_signal_received: int, _frame: FrameType | None) -> None:
    """Handle SIGINT (Ctrl+C) gracefully."""
    log.info("Closed by user (Ctrl+C)")
    sys.exit(0)


def run() -> None:
    """Console script entry point."""
    load_dotenv()
    signal(SIGINT, sigint_handler)
    main()


if __name__ == "__main__":
    run()
