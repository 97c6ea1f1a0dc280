from __future__ import annotations

import json
from typing import TYPE_CHECKING

import pytest

from flowregistry.adapters.snapshot_codecs import XmlProcessGroupCodec
from flowregistry.ui import cli
from tests.helpers.flow_contents import make_process_group

if TYPE_CHECKING:
    from pathlib import Path

    from flowregistry.domain.registry_service import RegistryService


def _run(service: RegistryService, *argv: str) -> None:
    cli.main(list(argv), service_factory=lambda: service)


def _output_lines(capsys: pytest.CaptureFixture[str]) -> list[str]:
    return capsys.readouterr().out.splitlines()


def _create_flow(service: RegistryService, capsys: pytest.CaptureFixture[str]) -> str:
    _run(service, "bucket", "create", "--name", "Team")
    bucket_id = _output_lines(capsys)[-1]
    _run(service, "flow", "create", "--bucket-id", bucket_id, "--name", "Ingest")
    return _output_lines(capsys)[-1]


def test_bucket_commands(
    registry_service: RegistryService, capsys: pytest.CaptureFixture[str]
) -> None:
    _run(registry_service, "--actor", "bob", "bucket", "create", "--name", "Team")
    bucket_id = _output_lines(capsys)[-1]

    _run(registry_service, "bucket", "list")

    assert _output_lines(capsys) == [f"{bucket_id}\tTeam"]
    assert registry_service.get_revision(bucket_id).version == 0


def test_flow_commands(
    registry_service: RegistryService, capsys: pytest.CaptureFixture[str]
) -> None:
    flow_id = _create_flow(registry_service, capsys)
    bucket_id = registry_service.get_flow(flow_id).bucket_id

    _run(registry_service, "flow", "list", "--bucket-id", bucket_id)

    assert _output_lines(capsys) == [f"{flow_id}\tIngest"]


def test_snapshot_import_and_export(
    registry_service: RegistryService,
    capsys: pytest.CaptureFixture[str],
    tmp_path: Path,
) -> None:
    flow_id = _create_flow(registry_service, capsys)
    legacy = tmp_path / "legacy.snapshot"
    legacy.write_bytes(XmlProcessGroupCodec().encode(make_process_group()))
    exported = tmp_path / "exported.json"

    _run(registry_service, "snapshot", "import", "--flow-id", flow_id, "--file", str(legacy))
    assert _output_lines(capsys) == ["1"]

    _run(registry_service, "snapshot", "export", "--flow-id", flow_id, "--output", str(exported))

    document = json.loads(exported.read_bytes())
    assert document["header"] == {"dataModelVersion": 2}
    assert document["content"]["identifier"] == "root-group"
    assert registry_service.get_revision(flow_id).version == 1


def test_snapshot_inspect_needs_no_service(
    capsys: pytest.CaptureFixture[str], tmp_path: Path
) -> None:
    path = tmp_path / "legacy.snapshot"
    path.write_bytes(XmlProcessGroupCodec().encode(make_process_group()))

    def no_service() -> RegistryService:
        raise AssertionError("inspect must not build a service")

    cli.main(["snapshot", "inspect", "--file", str(path)], service_factory=no_service)

    lines = _output_lines(capsys)
    assert lines[0] == "data model version: 1"
    assert lines[1] == "process group: root-group (Ingest)"
    assert lines[2] == "components: 7"


def test_stale_revision_exits_with_error(
    registry_service: RegistryService,
    capsys: pytest.CaptureFixture[str],
    tmp_path: Path,
) -> None:
    flow_id = _create_flow(registry_service, capsys)
    path = tmp_path / "flow.snapshot"
    path.write_bytes(XmlProcessGroupCodec().encode(make_process_group()))

    with pytest.raises(SystemExit) as excinfo:
        _run(
            registry_service,
            "snapshot",
            "import",
            "--flow-id",
            flow_id,
            "--file",
            str(path),
            "--revision",
            "5",
        )

    assert excinfo.value.code == 1
    assert registry_service.list_snapshots(flow_id) == []


def test_unknown_bucket_exits_with_error(registry_service: RegistryService) -> None:
    with pytest.raises(SystemExit) as excinfo:
        _run(registry_service, "flow", "list", "--bucket-id", "missing")

    assert excinfo.value.code == 1


def test_unreadable_file_exits_with_usage_error(
    registry_service: RegistryService, tmp_path: Path
) -> None:
    with pytest.raises(SystemExit) as excinfo:
        _run(registry_service, "snapshot", "inspect", "--file", str(tmp_path / "missing"))

    assert excinfo.value.code == 2


def test_blank_actor_is_rejected(registry_service: RegistryService) -> None:
    with pytest.raises(SystemExit) as excinfo:
        _run(registry_service, "--actor", " ", "bucket", "create", "--name", "Team")

    assert excinfo.value.code == 1
    assert registry_service.list_buckets() == []


def test_missing_subcommand_is_a_usage_error(registry_service: RegistryService) -> None:
    with pytest.raises(SystemExit) as excinfo:
        _run(registry_service, "bucket")

    assert excinfo.value.code == 2
