from __future__ import annotations

import logging
from collections import Counter
from dataclasses import replace
from typing import List, Optional, Protocol, Tuple, runtime_checkable

from vappprops.core.models import (
    DEFAULT_SECTION_ID,
    Property,
    ResourceRef,
    Scalar,
    Section,
    SectionListing,
)

logger = logging.getLogger(__name__)


@runtime_checkable
class SectionRepository(Protocol):
    def fetch_sections(self, ref: ResourceRef) -> List[Section]: ...

    def persist_sections(self, ref: ResourceRef, sections: List[Section]) -> None: ...


# -------- pure transforms ---------


def find_section(
    sections: List[Section], section_id: str | None, product_class: str = ""
) -> Optional[Section]:
    """Return the first section with the given id and class, or None."""
    section_id = section_id or DEFAULT_SECTION_ID
    for section in sections:
        if section.matches(section_id, product_class or ""):
            return section
    return None


def duplicate_section_ids(sections: List[Section]) -> List[str]:
    counts = Counter((s.product_class, s.id) for s in sections)
    return [f"{cls}.{sid}" if cls else sid for (cls, sid), n in counts.items() if n > 1]


def list_properties(sections: List[Section]) -> List[SectionListing]:
    """Every section with its properties, in stored order."""
    return [
        SectionListing(
            id=section.id,
            info=section.info,
            properties=[replace(p, attrib=dict(p.attrib)) for p in section.properties],
            product_class=section.product_class,
        )
        for section in sections
    ]


def upsert_property(
    sections: List[Section],
    section_id: str | None,
    label: str,
    key: str,
    value: str,
    *,
    product_class: str = "",
) -> List[Section]:
    """Set ``key`` to ``value`` in the section ``section_id``.

    The section is appended if missing. An existing property only has its
    value replaced; label, description and type are kept. A new property is
    user configurable and of type "string". Surrounding whitespace is not
    part of a key. Returns the same list object.
    """
    key = (key or "").strip()
    if not key:
        raise ValueError("Property key is required")
    section_id = section_id or DEFAULT_SECTION_ID

    section = find_section(sections, section_id, product_class)
    if section is None:
        section = Section(id=section_id, product_class=product_class or "")
        sections.append(section)

    for prop in section.properties:
        if prop.key == key:
            prop.value = Scalar(value)
            return sections

    section.properties.append(
        Property(
            key=key,
            label=label,
            value=Scalar(value),
            type="string",
            user_configurable=True,
        )
    )
    return sections


def delete_property(
    sections: List[Section], section_id: str | None, key: str, *, product_class: str = ""
) -> Tuple[List[Section], bool]:
    key = (key or "").strip()
    section = find_section(sections, section_id, product_class)
    if section is None:
        return sections, False
    for idx, prop in enumerate(section.properties):
        if prop.key == key:
            del section.properties[idx]
            following = section.properties[idx].key if idx < len(section.properties) else None
            # children that sat in front of the removed property move to the next one
            section.extras = [
                replace(extra, before=following) if extra.before == key else extra for extra in section.extras
            ]
            return sections, True
    return sections, False


def delete_section(
    sections: List[Section], section_id: str | None, *, product_class: str = ""
) -> Tuple[List[Section], bool]:
    section_id = section_id or DEFAULT_SECTION_ID
    for idx, section in enumerate(sections):
        if section.matches(section_id, product_class or ""):
            del sections[idx]
            return sections, True
    return sections, False


# -------- repository facade ---------


class ProductSectionManager:
    """Fetch, transform and persist product sections through a repository.

    The list is fetched fresh for every call and written back whole.
    """

    def __init__(self, repository: SectionRepository) -> None:
        self._repo = repository

    def fetch(self, ref: ResourceRef) -> List[Section]:
        sections = self._repo.fetch_sections(ref)
        dupes = duplicate_section_ids(sections)
        if dupes:
            logger.warning("%s has duplicate product section ids %r; first match wins", ref, dupes)
        return sections

    def list_properties(self, ref: ResourceRef) -> List[SectionListing]:
        return list_properties(self.fetch(ref))

    def set_property(
        self,
        ref: ResourceRef,
        key: str,
        value: str,
        *,
        label: str | None = None,
        section_id: str = DEFAULT_SECTION_ID,
        product_class: str = "",
    ) -> List[Section]:
        sections = self.fetch(ref)
        upsert_property(sections, section_id, label or key.strip(), key, value, product_class=product_class)
        logger.info("Setting %r in section %r of %s", key, section_id, ref)
        self._repo.persist_sections(ref, sections)
        return sections

    def delete_property(
        self,
        ref: ResourceRef,
        key: str,
        *,
        section_id: str = DEFAULT_SECTION_ID,
        product_class: str = "",
    ) -> bool:
        sections, found = delete_property(self.fetch(ref), section_id, key, product_class=product_class)
        if not found:
            logger.info("Property %r not found in section %r of %s", key, section_id, ref)
            return False
        self._repo.persist_sections(ref, sections)
        return True

    def delete_section(
        self, ref: ResourceRef, section_id: str = DEFAULT_SECTION_ID, *, product_class: str = ""
    ) -> bool:
        if not section_id and not product_class:
            logger.warning("Deleting the default product section of %s; guest properties may go with it", ref)
        sections, found = delete_section(self.fetch(ref), section_id, product_class=product_class)
        if not found:
            logger.warning("ProductSection %r not found in %s", section_id, ref)
            return False
        self._repo.persist_sections(ref, sections)
        return True
