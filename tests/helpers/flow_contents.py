"""Builders for process group trees used across serializer and service tests."""

from __future__ import annotations

from flowregistry.domain.model import (
    BundleCoordinate,
    ExternalControllerServiceReference,
    PortType,
    Position,
    VersionedConnection,
    VersionedControllerService,
    VersionedPort,
    VersionedProcessGroup,
    VersionedProcessor,
)

STANDARD_BUNDLE = BundleCoordinate(
    group="org.apache.nifi", artifact="nifi-standard-nar", version="1.9.0"
)


def make_process_group(
    name: str = "Ingest",
    *,
    identifier: str = "root-group",
    with_external_service: bool = False,
) -> VersionedProcessGroup:
    """Create a process group exercising every component kind, with one nested group."""

    generate = VersionedProcessor(
        identifier="proc-generate",
        name="GenerateFlowFile",
        position=Position(x=10.5, y=-20.0),
        type="org.apache.nifi.processors.standard.GenerateFlowFile",
        bundle=STANDARD_BUNDLE,
        properties={"File Size": "1 KB", "Batch Size": "1"},
        scheduling_period="1 sec",
        scheduling_strategy="TIMER_DRIVEN",
    )
    log_attribute = VersionedProcessor(
        identifier="proc-log",
        name="LogAttribute",
        comments="terminal step",
        position=Position(x=10.5, y=200.0),
        type="org.apache.nifi.processors.standard.LogAttribute",
        bundle=STANDARD_BUNDLE,
        auto_terminated_relationships=["success"],
    )
    input_port = VersionedPort(
        identifier="port-in", name="in", port_type=PortType.INPUT_PORT, position=Position()
    )
    output_port = VersionedPort(
        identifier="port-out", name="out", port_type=PortType.OUTPUT_PORT, position=Position()
    )
    connection = VersionedConnection(
        identifier="conn-1",
        name="generated",
        source_id=generate.identifier,
        destination_id=log_attribute.identifier,
        selected_relationships=["success"],
        back_pressure_object_threshold=10000,
        flow_file_expiration="0 sec",
    )
    service = VersionedControllerService(
        identifier="svc-ssl",
        name="SSL Context",
        type="org.apache.nifi.ssl.StandardSSLContextService",
        bundle=BundleCoordinate(
            group="org.apache.nifi", artifact="nifi-ssl-context-service-nar", version="1.9.0"
        ),
        properties={"Keystore Type": "JKS"},
    )
    nested = VersionedProcessGroup(
        identifier="child-group",
        name="Child",
        position=Position(x=400.0, y=400.0),
        processors=[
            VersionedProcessor(
                identifier="proc-child",
                name="UpdateAttribute",
                type="org.apache.nifi.processors.attributes.UpdateAttribute",
            )
        ],
        variables={"child.var": "nested"},
    )

    group = VersionedProcessGroup(
        identifier=identifier,
        name=name,
        comments="built for tests",
        position=Position(x=0.0, y=0.0),
        processors=[generate, log_attribute],
        input_ports=[input_port],
        output_ports=[output_port],
        connections=[connection],
        controller_services=[service],
        process_groups=[nested],
        variables={"env": "test", "empty": ""},
    )
    if with_external_service:
        group.external_controller_services["svc-external"] = ExternalControllerServiceReference(
            identifier="svc-external", name="Shared DBCP"
        )
    return group


def make_empty_process_group(identifier: str = "empty-group") -> VersionedProcessGroup:
    return VersionedProcessGroup(identifier=identifier, name="Empty")
