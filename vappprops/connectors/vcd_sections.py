from __future__ import annotations

import logging
from typing import List

from pyvcloud.vcd.client import Client, EntityType

from vappprops import config
from vappprops.connectors.ovf_codec import sections_from_xml, sections_to_xml
from vappprops.connectors.vcd_client import find_vapp, translate_errors
from vappprops.core.errors import RemoteRejectedError
from vappprops.core.models import ResourceRef, Section

logger = logging.getLogger(__name__)


def sections_uri(href: str) -> str:
    return href.rstrip("/") + "/productSections/"


class VcdSectionRepository:
    """Product sections of vApps (and VMs) on a vCloud Director endpoint.

    Persist replaces the whole ProductSectionList and blocks until the vCD
    task finishes.
    """

    def __init__(self, client: Client, *, task_timeout: int = config.TASK_TIMEOUT_S) -> None:
        self._client = client
        self._task_timeout = task_timeout

    def _vapp_href(self, ref: ResourceRef) -> str:
        return find_vapp(self._client, ref).href

    # -------- by href (vApp or VM) --------

    def fetch_sections_at(self, href: str) -> List[Section]:
        with translate_errors():
            resource = self._client.get_resource(sections_uri(href))
        sections = sections_from_xml(resource)
        logger.debug("Fetched %d product sections from %s", len(sections), href)
        return sections

    def persist_sections_at(self, href: str, sections: List[Section]) -> None:
        body = sections_to_xml(sections)
        with translate_errors():
            task = self._client.put_resource(
                sections_uri(href), body, EntityType.PRODUCT_SECTION_LIST.value
            )
            result = self._client.get_task_monitor().wait_for_success(task, timeout=self._task_timeout)
        status = result.get("status") if result is not None else None
        if status is not None and status != "success":
            raise RemoteRejectedError(f"Updating product sections of {href} ended with status {status}")
        logger.info("Product sections of %s updated", href)

    # -------- SectionRepository --------

    def fetch_sections(self, ref: ResourceRef) -> List[Section]:
        return self.fetch_sections_at(self._vapp_href(ref))

    def persist_sections(self, ref: ResourceRef, sections: List[Section]) -> None:
        self.persist_sections_at(self._vapp_href(ref), sections)
