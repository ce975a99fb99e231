from __future__ import annotations

from typing import List, Sequence

from vappprops.core.models import Multi, Property, Scalar, SectionListing


def _text(value: str | None) -> str:
    return "" if value is None else value


def _property_lines(prop: Property, *, with_multi: bool = True) -> List[str]:
    single = prop.value.value if isinstance(prop.value, Scalar) else ""
    lines = [
        "Property:  ",
        f"    Label: {_text(prop.label)}",
        f"    Key: {_text(prop.key)}",
        f"    Description: {_text(prop.description)}",
        f"    Single Value: {single}",
    ]
    if with_multi and isinstance(prop.value, Multi) and prop.value.values:
        lines.append("    Multi-Values: " + "".join(f" {v}" for v in prop.value.values))
    lines.append("")
    return lines


def format_sections(listings: Sequence[SectionListing]) -> str:
    """Render listings as the console report."""
    if not listings:
        return "No Product Sections\n"
    lines: List[str] = []
    for listing in listings:
        header = f"Property Section:   {listing.info} with id: {listing.id}"
        if listing.product_class:
            header += f" class: {listing.product_class}"
        lines.append(header)
        if not listing.properties:
            lines.append("No Product Properties in Section")
            lines.append("")
            continue
        for prop in listing.properties:
            lines.extend(_property_lines(prop))
    return "\n".join(lines) + "\n"


def format_vm_properties(vm_name: str, listings: Sequence[SectionListing]) -> str:
    lines: List[str] = []
    for listing in listings:
        if not listing.properties:
            continue
        lines.append(f"ProductProperties for VM {vm_name}")
        for prop in listing.properties:
            lines.extend(_property_lines(prop, with_multi=False))
    return "\n".join(lines) + ("\n" if lines else "")
