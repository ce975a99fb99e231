"""Minimal JSON file repository: one section list per vApp. No secrets; credentials live in the keyring.
Offline stand-in for a vCloud Director endpoint."""
import json
import logging
from pathlib import Path

from vappprops.core.errors import CorruptStoreError, ResourceNotFoundError
from vappprops.core.models import Extra, Multi, Property, ResourceRef, Scalar, Section

logger = logging.getLogger(__name__)


def section_to_dict(section: Section) -> dict:
    props = []
    for p in section.properties:
        entry = {
            "key": p.key,
            "label": p.label,
            "description": p.description,
            "type": p.type,
            "userConfigurable": p.user_configurable,
        }
        if isinstance(p.value, Multi):
            entry["values"] = list(p.value.values)
        else:
            entry["value"] = p.value.value
        if p.attrib:
            entry["attrib"] = dict(p.attrib)
        props.append(entry)
    data = {"id": section.id, "info": section.info, "properties": props}
    if section.product_class:
        data["class"] = section.product_class
    if section.attrib:
        data["attrib"] = dict(section.attrib)
    if section.extras:
        data["extras"] = [{"xml": e.xml, "before": e.before} for e in section.extras]
    return data


def section_from_dict(payload: dict) -> Section:
    props = []
    for raw in payload.get("properties", []) or []:
        if "values" in raw:
            value = Multi(tuple(str(v) for v in raw["values"] or ()))
        else:
            value = Scalar(str(raw.get("value") or ""))
        props.append(
            Property(
                key=raw.get("key", ""),
                label=raw.get("label", ""),
                value=value,
                description=raw.get("description"),
                type=raw.get("type", "string"),
                user_configurable=bool(raw.get("userConfigurable", True)),
                attrib=dict(raw.get("attrib") or {}),
            )
        )
    extras = [
        Extra(xml=e["xml"], before=e.get("before"))
        for e in payload.get("extras", []) or []
        if isinstance(e, dict) and "xml" in e
    ]
    return Section(
        id=payload.get("id", "") or "",
        info=payload.get("info", "") or "",
        properties=props,
        extras=extras,
        product_class=payload.get("class", "") or "",
        attrib=dict(payload.get("attrib") or {}),
    )


class JsonSectionStore:
    """Section repository over a single JSON file (dict of "vdc/vapp" -> section list).

    Reads tolerate a damaged file; writes refuse to replace it.
    """

    def __init__(self, path: Path | str, *, create_missing: bool = False) -> None:
        self._path = Path(path)
        self._create_missing = create_missing

    def _load(self, *, strict: bool = False) -> dict:
        if not self._path.exists():
            return {}
        try:
            data = json.loads(self._path.read_text(encoding="utf-8"))
        except (json.JSONDecodeError, OSError) as exc:
            if strict:
                raise CorruptStoreError(f"Section store {self._path} is unreadable: {exc}") from exc
            logger.warning("Ignoring unreadable section store %s", self._path)
            return {}
        if not isinstance(data, dict):
            if strict:
                raise CorruptStoreError(f"Section store {self._path} does not hold an object")
            return {}
        return data

    def _save(self, data: dict) -> None:
        self._path.parent.mkdir(parents=True, exist_ok=True)
        self._path.write_text(json.dumps(data, indent=2), encoding="utf-8")

    def resources(self) -> list[ResourceRef]:
        return [ResourceRef.parse(name) for name in self._load()]

    def fetch_sections(self, ref: ResourceRef) -> list[Section]:
        data = self._load()
        bucket = data.get(str(ref))
        if bucket is None:
            if self._create_missing:
                return []
            raise ResourceNotFoundError(f"vApp {ref.vapp} was not found in VDC {ref.vdc}")
        return [section_from_dict(s) for s in bucket if isinstance(s, dict)]

    def persist_sections(self, ref: ResourceRef, sections: list[Section]) -> None:
        data = self._load(strict=True)
        data[str(ref)] = [section_to_dict(s) for s in sections]
        self._save(data)
