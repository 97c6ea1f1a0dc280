"""Translate between snapshot schema models and the domain process-group tree."""

from __future__ import annotations

from flowregistry.domain.model import (
    BundleCoordinate,
    ExternalControllerServiceReference,
    Position,
    VersionedConnection,
    VersionedControllerService,
    VersionedPort,
    VersionedProcessGroup,
    VersionedProcessor,
)

from .schema import (
    BundleSchema,
    ConnectionSchema,
    ControllerServiceSchema,
    ExternalControllerServiceSchema,
    PortSchema,
    PositionSchema,
    ProcessGroupSchema,
    ProcessorSchema,
)

# ---------------------------------------------------------------------------
# schema -> domain
# ---------------------------------------------------------------------------


def _position(schema: PositionSchema | None) -> Position | None:
    if schema is None:
        return None
    return Position(x=schema.x, y=schema.y)


def _bundle(schema: BundleSchema | None) -> BundleCoordinate | None:
    if schema is None:
        return None
    return BundleCoordinate(group=schema.group, artifact=schema.artifact, version=schema.version)


def _processor(schema: ProcessorSchema) -> VersionedProcessor:
    return VersionedProcessor(
        identifier=schema.identifier,
        name=schema.name,
        comments=schema.comments,
        position=_position(schema.position),
        type=schema.type,
        bundle=_bundle(schema.bundle),
        properties=dict(schema.properties),
        scheduling_period=schema.scheduling_period,
        scheduling_strategy=schema.scheduling_strategy,
        auto_terminated_relationships=list(schema.auto_terminated_relationships),
    )


def _port(schema: PortSchema) -> VersionedPort:
    return VersionedPort(
        identifier=schema.identifier,
        name=schema.name,
        comments=schema.comments,
        position=_position(schema.position),
        port_type=schema.type,
    )


def _connection(schema: ConnectionSchema) -> VersionedConnection:
    return VersionedConnection(
        identifier=schema.identifier,
        name=schema.name,
        comments=schema.comments,
        position=_position(schema.position),
        source_id=schema.source_id,
        destination_id=schema.destination_id,
        selected_relationships=list(schema.selected_relationships),
        back_pressure_object_threshold=schema.back_pressure_object_threshold,
        flow_file_expiration=schema.flow_file_expiration,
    )


def _controller_service(schema: ControllerServiceSchema) -> VersionedControllerService:
    return VersionedControllerService(
        identifier=schema.identifier,
        name=schema.name,
        comments=schema.comments,
        position=_position(schema.position),
        type=schema.type,
        bundle=_bundle(schema.bundle),
        properties=dict(schema.properties),
    )


def to_process_group(schema: ProcessGroupSchema) -> VersionedProcessGroup:
    return VersionedProcessGroup(
        identifier=schema.identifier,
        name=schema.name,
        comments=schema.comments,
        position=_position(schema.position),
        processors=[_processor(item) for item in schema.processors],
        input_ports=[_port(item) for item in schema.input_ports],
        output_ports=[_port(item) for item in schema.output_ports],
        connections=[_connection(item) for item in schema.connections],
        controller_services=[_controller_service(item) for item in schema.controller_services],
        process_groups=[to_process_group(item) for item in schema.process_groups],
        variables=dict(schema.variables),
        external_controller_services={
            key: ExternalControllerServiceReference(identifier=ref.identifier, name=ref.name)
            for key, ref in schema.external_controller_services.items()
        },
    )


# ---------------------------------------------------------------------------
# domain -> schema
# ---------------------------------------------------------------------------


def from_process_group(group: VersionedProcessGroup) -> ProcessGroupSchema:
    return ProcessGroupSchema(
        identifier=group.identifier,
        name=group.name,
        comments=group.comments,
        position=_position_schema(group.position),
        processors=[_processor_schema(item) for item in group.processors],
        input_ports=[_port_schema(item) for item in group.input_ports],
        output_ports=[_port_schema(item) for item in group.output_ports],
        connections=[_connection_schema(item) for item in group.connections],
        controller_services=[
            _controller_service_schema(item) for item in group.controller_services
        ],
        process_groups=[from_process_group(item) for item in group.process_groups],
        variables=dict(group.variables),
        external_controller_services={
            key: ExternalControllerServiceSchema(identifier=ref.identifier, name=ref.name)
            for key, ref in group.external_controller_services.items()
        },
    )


def _position_schema(position: Position | None) -> PositionSchema | None:
    if position is None:
        return None
    return PositionSchema(x=position.x, y=position.y)


def _bundle_schema(bundle: BundleCoordinate | None) -> BundleSchema | None:
    if bundle is None:
        return None
    return BundleSchema(group=bundle.group, artifact=bundle.artifact, version=bundle.version)


def _processor_schema(processor: VersionedProcessor) -> ProcessorSchema:
    return ProcessorSchema(
        identifier=processor.identifier,
        name=processor.name,
        comments=processor.comments,
        position=_position_schema(processor.position),
        type=processor.type,
        bundle=_bundle_schema(processor.bundle),
        properties=dict(processor.properties),
        scheduling_period=processor.scheduling_period,
        scheduling_strategy=processor.scheduling_strategy,
        auto_terminated_relationships=list(processor.auto_terminated_relationships),
    )


def _port_schema(port: VersionedPort) -> PortSchema:
    return PortSchema(
        identifier=port.identifier,
        name=port.name,
        comments=port.comments,
        position=_position_schema(port.position),
        type=port.port_type,
    )


def _connection_schema(connection: VersionedConnection) -> ConnectionSchema:
    return ConnectionSchema(
        identifier=connection.identifier,
        name=connection.name,
        comments=connection.comments,
        position=_position_schema(connection.position),
        source_id=connection.source_id,
        destination_id=connection.destination_id,
        selected_relationships=list(connection.selected_relationships),
        back_pressure_object_threshold=connection.back_pressure_object_threshold,
        flow_file_expiration=connection.flow_file_expiration,
    )


def _controller_service_schema(service: VersionedControllerService) -> ControllerServiceSchema:
    return ControllerServiceSchema(
        identifier=service.identifier,
        name=service.name,
        comments=service.comments,
        position=_position_schema(service.position),
        type=service.type,
        bundle=_bundle_schema(service.bundle),
        properties=dict(service.properties),
    )
