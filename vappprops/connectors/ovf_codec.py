"""Conversion between vCD ProductSectionList documents and Section lists.

Only ovf:Property children become properties. Every other child of a
ProductSection except ovf:Info is kept verbatim as an Extra anchored to the
property it preceded, so Product/Vendor stay ahead of the properties and each
ovf:Category stays in front of the properties it groups. Attributes the model
does not name (ovf:required, ovf:password, ...) are carried in ``attrib``.
"""

from __future__ import annotations

import copy
from typing import Dict, List

from lxml import etree
from pyvcloud.vcd.client import NSMAP
from pyvcloud.vcd.utils import tag

from vappprops.core.models import Extra, Multi, Property, Scalar, Section

OVF = tag("ovf")
VCLOUD = tag("vcloud")

_SECTION_ATTRS = {OVF("instance"), OVF("class")}
_PROPERTY_ATTRS = {OVF("key"), OVF("type"), OVF("userConfigurable"), OVF("value")}


def _child_text(node, name: str) -> str | None:
    child = node.find(OVF(name))
    if child is None:
        return None
    return child.text


def _other_attrib(node, known) -> Dict[str, str]:
    return {k: v for k, v in node.attrib.items() if k not in known}


def _property_from_xml(node) -> Property:
    values = [v.get(OVF("value"), "") for v in node.iterchildren(OVF("Value"))]
    if values:
        value = Multi(tuple(values))
    else:
        value = Scalar(node.get(OVF("value"), ""))
    return Property(
        key=node.get(OVF("key"), ""),
        label=_child_text(node, "Label") or "",
        value=value,
        description=_child_text(node, "Description"),
        type=node.get(OVF("type"), "string"),
        user_configurable=node.get(OVF("userConfigurable"), "false").lower() == "true",
        attrib=_other_attrib(node, _PROPERTY_ATTRS),
    )


def _serialize_extra(node) -> str:
    clone = copy.deepcopy(node)
    clone.tail = None
    etree.cleanup_namespaces(clone)
    return etree.tostring(clone, encoding="unicode")


def _section_from_xml(node) -> Section:
    section = Section(
        id=node.get(OVF("instance"), ""),
        info=_child_text(node, "Info") or "",
        product_class=node.get(OVF("class"), ""),
        attrib=_other_attrib(node, _SECTION_ATTRS),
    )
    pending: List[str] = []
    for child in node.iterchildren():
        if not isinstance(child.tag, str):
            # comments and processing instructions
            continue
        if child.tag == OVF("Property"):
            prop = _property_from_xml(child)
            section.extras.extend(Extra(xml, before=prop.key) for xml in pending)
            pending = []
            section.properties.append(prop)
        elif child.tag != OVF("Info"):
            pending.append(_serialize_extra(child))
    section.extras.extend(Extra(xml) for xml in pending)
    return section


def sections_from_xml(root) -> List[Section]:
    """Read every ovf:ProductSection under a ProductSectionList element."""
    return [_section_from_xml(node) for node in root.iterchildren(OVF("ProductSection"))]


def parse_product_sections(text: str | bytes) -> List[Section]:
    if isinstance(text, str):
        text = text.encode("utf-8")
    return sections_from_xml(etree.fromstring(text))


def _property_to_xml(prop: Property):
    node = etree.Element(OVF("Property"))
    node.set(OVF("key"), prop.key)
    node.set(OVF("type"), prop.type or "string")
    node.set(OVF("userConfigurable"), "true" if prop.user_configurable else "false")
    if isinstance(prop.value, Scalar):
        node.set(OVF("value"), prop.value.value)
    for name, value in prop.attrib.items():
        node.set(name, value)
    etree.SubElement(node, OVF("Label")).text = prop.label
    if prop.description is not None:
        etree.SubElement(node, OVF("Description")).text = prop.description
    if isinstance(prop.value, Multi):
        for v in prop.value.values:
            etree.SubElement(node, OVF("Value")).set(OVF("value"), v)
    return node


def _section_to_xml(parent, section: Section) -> None:
    node = etree.SubElement(parent, OVF("ProductSection"))
    for name, value in section.attrib.items():
        node.set(name, value)
    if section.product_class:
        node.set(OVF("class"), section.product_class)
    if section.id:
        node.set(OVF("instance"), section.id)
    etree.SubElement(node, OVF("Info")).text = section.info or None

    keys = {prop.key for prop in section.properties}
    for prop in section.properties:
        for extra in section.extras:
            if extra.before == prop.key:
                node.append(etree.fromstring(extra.xml))
        node.append(_property_to_xml(prop))
    # trailing children, and children whose property has been deleted
    for extra in section.extras:
        if extra.before is None or extra.before not in keys:
            node.append(etree.fromstring(extra.xml))


def sections_to_xml(sections: List[Section]):
    """Build the ProductSectionList body for a PUT to .../productSections/."""
    root = etree.Element(
        VCLOUD("ProductSectionList"),
        nsmap={None: NSMAP["vcloud"], "ovf": NSMAP["ovf"]},
    )
    for section in sections:
        _section_to_xml(root, section)
    return root
