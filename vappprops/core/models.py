from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, List, Optional, Tuple, Union

DEFAULT_SECTION_ID = ""


@dataclass(frozen=True)
class Scalar:
    value: str = ""


@dataclass(frozen=True)
class Multi:
    values: Tuple[str, ...] = ()


PropertyValue = Union[Scalar, Multi]


@dataclass
class Property:
    key: str
    label: str
    value: PropertyValue = field(default_factory=Scalar)
    description: str | None = None
    type: str = "string"
    user_configurable: bool = True
    # other XML attributes (ovf:password, ovf:qualifiers, ...) keyed in Clark notation
    attrib: Dict[str, str] = field(default_factory=dict)


@dataclass(frozen=True)
class Extra:
    """A serialized non-property child of a ProductSection.

    ``before`` is the key of the property it preceded, or None when it came
    after the last property.
    """

    xml: str
    before: Optional[str] = None


@dataclass
class Section:
    """One OVF ProductSection.

    A section is identified by (product_class, id). With both empty it is the
    default section.
    """

    id: str = DEFAULT_SECTION_ID
    info: str = ""
    properties: List[Property] = field(default_factory=list)
    # non-property OVF children (Product, Vendor, Category, ...)
    extras: List[Extra] = field(default_factory=list)
    product_class: str = ""
    # other XML attributes (ovf:required, ...) keyed in Clark notation
    attrib: Dict[str, str] = field(default_factory=dict)

    def matches(self, section_id: str, product_class: str = "") -> bool:
        return self.id == section_id and self.product_class == product_class

    @property
    def display_id(self) -> str:
        return f"{self.product_class}.{self.id}" if self.product_class else self.id


@dataclass(frozen=True)
class ResourceRef:
    vdc: str
    vapp: str

    def __str__(self) -> str:
        return f"{self.vdc}/{self.vapp}"

    @classmethod
    def parse(cls, text: str) -> "ResourceRef":
        vdc, sep, vapp = text.partition("/")
        if not sep or not vdc or not vapp:
            raise ValueError(f"Resource must look like 'vdc/vapp': {text!r}")
        return cls(vdc=vdc, vapp=vapp)


@dataclass
class SectionListing:
    """Read-only view of a section returned by list_properties."""

    id: str
    info: str
    properties: List[Property]
    product_class: str = ""
