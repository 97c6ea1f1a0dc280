"""Legacy process-group codec, data model version 1.

Payload layout: the ASCII magic ``Flows``, the data model version as a 4-byte
big-endian signed integer, then an XML document rooted at ``<processGroup>``.
Maps are written as ``<entry><key/><value/></entry>`` lists. Version 1 predates
external controller service references and cannot carry them.
"""

from __future__ import annotations

import struct
from logging import getLogger
from typing import TYPE_CHECKING, Final

from lxml import etree

from flowregistry.domain.errors import SerializationError
from flowregistry.domain.model import (
    BundleCoordinate,
    PortType,
    Position,
    VersionedComponent,
    VersionedConnection,
    VersionedControllerService,
    VersionedPort,
    VersionedProcessGroup,
    VersionedProcessor,
)

if TYPE_CHECKING:
    from collections.abc import Iterable, Mapping

log = getLogger(__name__)

MAGIC_HEADER: Final = b"Flows"
_VERSION_FORMAT: Final = ">i"
_HEADER_LENGTH: Final = len(MAGIC_HEADER) + struct.calcsize(_VERSION_FORMAT)

_PARSER: Final = etree.XMLParser(resolve_entities=False, no_network=True)


class XmlProcessGroupCodec:
    """Reads and writes ``VersionedProcessGroup`` trees in the version 1 XML layout."""

    version: Final = 1

    def read_data_model_version(self, data: bytes) -> int | None:
        if len(data) < _HEADER_LENGTH or not data.startswith(MAGIC_HEADER):
            return None
        (stamped,) = struct.unpack(_VERSION_FORMAT, data[len(MAGIC_HEADER) : _HEADER_LENGTH])
        return stamped

    def encode(self, obj: VersionedProcessGroup) -> bytes:
        root = _write_group(obj, "processGroup")
        log.debug("Encoding process group %s as data model version 1", obj.identifier)
        body = etree.tostring(root, xml_declaration=True, encoding="UTF-8", standalone=True)
        return MAGIC_HEADER + struct.pack(_VERSION_FORMAT, self.version) + body

    def decode(self, data: bytes) -> VersionedProcessGroup:
        stamped = self.read_data_model_version(data)
        if stamped != self.version:
            raise SerializationError(
                f"Expected a data model version {self.version} payload, found {stamped}"
            )
        try:
            root = etree.fromstring(data[_HEADER_LENGTH:], parser=_PARSER)
        except etree.XMLSyntaxError as exc:
            raise SerializationError(f"Malformed version 1 snapshot document: {exc}") from exc
        if root.tag != "processGroup":
            raise SerializationError(f"Unexpected root element <{root.tag}>")
        return _read_group(root)


# ---------------------------------------------------------------------------
# writing
# ---------------------------------------------------------------------------


def _text(parent: etree._Element, tag: str, value: object | None) -> None:
    if value is None:
        return
    etree.SubElement(parent, tag).text = str(value)


def _entries(parent: etree._Element, tag: str, values: Mapping[str, str]) -> None:
    container = etree.SubElement(parent, tag)
    for key, value in values.items():
        entry = etree.SubElement(container, "entry")
        etree.SubElement(entry, "key").text = key
        etree.SubElement(entry, "value").text = value


def _strings(parent: etree._Element, tag: str, item_tag: str, values: Iterable[str]) -> None:
    container = etree.SubElement(parent, tag)
    for value in values:
        etree.SubElement(container, item_tag).text = value


def _component(element: etree._Element, component: VersionedComponent) -> None:
    _text(element, "identifier", component.identifier)
    _text(element, "name", component.name)
    _text(element, "comments", component.comments)
    if component.position is not None:
        etree.SubElement(
            element,
            "position",
            x=repr(component.position.x),
            y=repr(component.position.y),
        )


def _bundle_element(parent: etree._Element, bundle: BundleCoordinate | None) -> None:
    if bundle is None:
        return
    element = etree.SubElement(parent, "bundle")
    _text(element, "group", bundle.group)
    _text(element, "artifact", bundle.artifact)
    _text(element, "version", bundle.version)


def _write_processor(parent: etree._Element, processor: VersionedProcessor) -> None:
    element = etree.SubElement(parent, "processor")
    _component(element, processor)
    _text(element, "type", processor.type)
    _bundle_element(element, processor.bundle)
    _entries(element, "properties", processor.properties)
    _text(element, "schedulingPeriod", processor.scheduling_period)
    _text(element, "schedulingStrategy", processor.scheduling_strategy)
    _strings(
        element,
        "autoTerminatedRelationships",
        "relationship",
        processor.auto_terminated_relationships,
    )


def _write_port(parent: etree._Element, port: VersionedPort) -> None:
    element = etree.SubElement(parent, "port")
    _component(element, port)
    _text(element, "type", port.port_type.value)


def _write_connection(parent: etree._Element, connection: VersionedConnection) -> None:
    element = etree.SubElement(parent, "connection")
    _component(element, connection)
    _text(element, "sourceId", connection.source_id)
    _text(element, "destinationId", connection.destination_id)
    _strings(element, "selectedRelationships", "relationship", connection.selected_relationships)
    _text(element, "backPressureObjectThreshold", connection.back_pressure_object_threshold)
    _text(element, "flowFileExpiration", connection.flow_file_expiration)


def _write_controller_service(parent: etree._Element, service: VersionedControllerService) -> None:
    element = etree.SubElement(parent, "controllerService")
    _component(element, service)
    _text(element, "type", service.type)
    _bundle_element(element, service.bundle)
    _entries(element, "properties", service.properties)


def _write_group(
    group: VersionedProcessGroup, tag: str, parent: etree._Element | None = None
) -> etree._Element:
    if group.external_controller_services:
        raise SerializationError(
            "Data model version 1 cannot represent external controller service references"
        )
    element = etree.Element(tag) if parent is None else etree.SubElement(parent, tag)
    _component(element, group)

    processors = etree.SubElement(element, "processors")
    for processor in group.processors:
        _write_processor(processors, processor)
    input_ports = etree.SubElement(element, "inputPorts")
    for port in group.input_ports:
        _write_port(input_ports, port)
    output_ports = etree.SubElement(element, "outputPorts")
    for port in group.output_ports:
        _write_port(output_ports, port)
    connections = etree.SubElement(element, "connections")
    for connection in group.connections:
        _write_connection(connections, connection)
    services = etree.SubElement(element, "controllerServices")
    for service in group.controller_services:
        _write_controller_service(services, service)
    children = etree.SubElement(element, "processGroups")
    for child in group.process_groups:
        _write_group(child, "processGroup", children)
    _entries(element, "variables", group.variables)
    return element


# ---------------------------------------------------------------------------
# reading
# ---------------------------------------------------------------------------


def _child_text(element: etree._Element, tag: str) -> str | None:
    child = element.find(tag)
    if child is None:
        return None
    return child.text or ""


def _required_text(element: etree._Element, tag: str) -> str:
    value = _child_text(element, tag)
    if value is None:
        raise SerializationError(f"<{element.tag}> is missing required element <{tag}>")
    return value


def _read_entries(element: etree._Element, tag: str) -> dict[str, str]:
    container = element.find(tag)
    if container is None:
        return {}
    values: dict[str, str] = {}
    for entry in container.findall("entry"):
        key = _required_text(entry, "key")
        values[key] = _child_text(entry, "value") or ""
    return values


def _read_strings(element: etree._Element, tag: str, item_tag: str) -> list[str]:
    container = element.find(tag)
    if container is None:
        return []
    return [item.text or "" for item in container.findall(item_tag)]


def _read_children(element: etree._Element, tag: str, item_tag: str) -> list[etree._Element]:
    container = element.find(tag)
    if container is None:
        return []
    return container.findall(item_tag)


def _read_component(element: etree._Element) -> dict[str, object]:
    position = None
    position_element = element.find("position")
    if position_element is not None:
        position = Position(
            x=float(position_element.get("x", "0")),
            y=float(position_element.get("y", "0")),
        )
    return {
        "identifier": _required_text(element, "identifier"),
        "name": _child_text(element, "name"),
        "comments": _child_text(element, "comments"),
        "position": position,
    }


def _read_bundle(element: etree._Element) -> BundleCoordinate | None:
    bundle = element.find("bundle")
    if bundle is None:
        return None
    return BundleCoordinate(
        group=_required_text(bundle, "group"),
        artifact=_required_text(bundle, "artifact"),
        version=_required_text(bundle, "version"),
    )


def _read_processor(element: etree._Element) -> VersionedProcessor:
    return VersionedProcessor(
        **_read_component(element),
        type=_required_text(element, "type"),
        bundle=_read_bundle(element),
        properties=_read_entries(element, "properties"),
        scheduling_period=_child_text(element, "schedulingPeriod"),
        scheduling_strategy=_child_text(element, "schedulingStrategy"),
        auto_terminated_relationships=_read_strings(
            element, "autoTerminatedRelationships", "relationship"
        ),
    )


def _read_port(element: etree._Element) -> VersionedPort:
    return VersionedPort(
        **_read_component(element),
        port_type=PortType(_required_text(element, "type")),
    )


def _read_connection(element: etree._Element) -> VersionedConnection:
    threshold = _child_text(element, "backPressureObjectThreshold")
    return VersionedConnection(
        **_read_component(element),
        source_id=_required_text(element, "sourceId"),
        destination_id=_required_text(element, "destinationId"),
        selected_relationships=_read_strings(element, "selectedRelationships", "relationship"),
        back_pressure_object_threshold=int(threshold) if threshold is not None else None,
        flow_file_expiration=_child_text(element, "flowFileExpiration"),
    )


def _read_controller_service(element: etree._Element) -> VersionedControllerService:
    return VersionedControllerService(
        **_read_component(element),
        type=_required_text(element, "type"),
        bundle=_read_bundle(element),
        properties=_read_entries(element, "properties"),
    )


def _read_group(element: etree._Element) -> VersionedProcessGroup:
    return VersionedProcessGroup(
        **_read_component(element),
        processors=[
            _read_processor(item) for item in _read_children(element, "processors", "processor")
        ],
        input_ports=[_read_port(item) for item in _read_children(element, "inputPorts", "port")],
        output_ports=[_read_port(item) for item in _read_children(element, "outputPorts", "port")],
        connections=[
            _read_connection(item)
            for item in _read_children(element, "connections", "connection")
        ],
        controller_services=[
            _read_controller_service(item)
            for item in _read_children(element, "controllerServices", "controllerService")
        ],
        process_groups=[
            _read_group(item) for item in _read_children(element, "processGroups", "processGroup")
        ],
        variables=_read_entries(element, "variables"),
    )
