"""Pydantic models describing the JSON snapshot document (data model version 2)."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field, StrictInt
from pydantic.alias_generators import to_camel

from flowregistry.domain.model import PortType


class SnapshotBaseModel(BaseModel):
    model_config = ConfigDict(extra="ignore", populate_by_name=True, alias_generator=to_camel)


class SnapshotHeader(SnapshotBaseModel):
    data_model_version: StrictInt


class HeaderEnvelope(SnapshotBaseModel):
    """Just enough of the document to find its stamped version."""

    header: SnapshotHeader


class PositionSchema(SnapshotBaseModel):
    x: float = 0.0
    y: float = 0.0


class BundleSchema(SnapshotBaseModel):
    group: str
    artifact: str
    version: str


class ComponentSchema(SnapshotBaseModel):
    identifier: str
    name: str | None = None
    comments: str | None = None
    position: PositionSchema | None = None


class ProcessorSchema(ComponentSchema):
    type: str
    bundle: BundleSchema | None = None
    properties: dict[str, str] = Field(default_factory=dict)
    scheduling_period: str | None = None
    scheduling_strategy: str | None = None
    auto_terminated_relationships: list[str] = Field(default_factory=list)


class PortSchema(ComponentSchema):
    type: PortType


class ConnectionSchema(ComponentSchema):
    source_id: str
    destination_id: str
    selected_relationships: list[str] = Field(default_factory=list)
    back_pressure_object_threshold: int | None = None
    flow_file_expiration: str | None = None


class ControllerServiceSchema(ComponentSchema):
    type: str
    bundle: BundleSchema | None = None
    properties: dict[str, str] = Field(default_factory=dict)


class ExternalControllerServiceSchema(SnapshotBaseModel):
    identifier: str
    name: str | None = None


class ProcessGroupSchema(ComponentSchema):
    processors: list[ProcessorSchema] = Field(default_factory=list)
    input_ports: list[PortSchema] = Field(default_factory=list)
    output_ports: list[PortSchema] = Field(default_factory=list)
    connections: list[ConnectionSchema] = Field(default_factory=list)
    controller_services: list[ControllerServiceSchema] = Field(default_factory=list)
    process_groups: list[ProcessGroupSchema] = Field(default_factory=list)
    variables: dict[str, str] = Field(default_factory=dict)
    external_controller_services: dict[str, ExternalControllerServiceSchema] = Field(
        default_factory=dict
    )


class ProcessGroupDocument(SnapshotBaseModel):
    header: SnapshotHeader
    content: ProcessGroupSchema
