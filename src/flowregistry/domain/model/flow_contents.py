"""In-memory object graph of a versioned process group.

These are plain values: two trees with the same fields compare equal, which is
what snapshot round trips are checked against.
"""

from __future__ import annotations

from dataclasses import dataclass, field

from .enums import PortType


@dataclass(kw_only=True)
class Position:
    x: float = 0.0
    y: float = 0.0


@dataclass(kw_only=True)
class BundleCoordinate:
    group: str
    artifact: str
    version: str


@dataclass(kw_only=True)
class VersionedComponent:
    identifier: str
    name: str | None = None
    comments: str | None = None
    position: Position | None = None


@dataclass(kw_only=True)
class VersionedProcessor(VersionedComponent):
    type: str
    bundle: BundleCoordinate | None = None
    properties: dict[str, str] = field(default_factory=dict)
    scheduling_period: str | None = None
    scheduling_strategy: str | None = None
    auto_terminated_relationships: list[str] = field(default_factory=list)


@dataclass(kw_only=True)
class VersionedPort(VersionedComponent):
    port_type: PortType


@dataclass(kw_only=True)
class VersionedConnection(VersionedComponent):
    source_id: str
    destination_id: str
    selected_relationships: list[str] = field(default_factory=list)
    back_pressure_object_threshold: int | None = None
    flow_file_expiration: str | None = None


@dataclass(kw_only=True)
class VersionedControllerService(VersionedComponent):
    type: str
    bundle: BundleCoordinate | None = None
    properties: dict[str, str] = field(default_factory=dict)


@dataclass(kw_only=True)
class ExternalControllerServiceReference:
    """A controller service the group uses but does not own."""

    identifier: str
    name: str | None = None


@dataclass(kw_only=True)
class VersionedProcessGroup(VersionedComponent):
    processors: list[VersionedProcessor] = field(default_factory=list)
    input_ports: list[VersionedPort] = field(default_factory=list)
    output_ports: list[VersionedPort] = field(default_factory=list)
    connections: list[VersionedConnection] = field(default_factory=list)
    controller_services: list[VersionedControllerService] = field(default_factory=list)
    process_groups: list[VersionedProcessGroup] = field(default_factory=list)
    variables: dict[str, str] = field(default_factory=dict)
    external_controller_services: dict[str, ExternalControllerServiceReference] = field(
        default_factory=dict
    )

    def iter_groups(self) -> list[VersionedProcessGroup]:
        """Return this group followed by every nested group, depth first."""
        groups: list[VersionedProcessGroup] = [self]
        for child in self.process_groups:
            groups.extend(child.iter_groups())
        return groups

    @property
    def component_count(self) -> int:
        total = 0
        for group in self.iter_groups():
            total += (
                len(group.processors)
                + len(group.input_ports)
                + len(group.output_ports)
                + len(group.connections)
                + len(group.controller_services)
            )
        return total
