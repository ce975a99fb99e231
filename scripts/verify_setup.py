#!/usr/bin/env python3
"""Verify setup: paths, vappprops imports, JsonSectionStore CRUD, vCD SDK."""
from __future__ import annotations

import os
import sys
import tempfile
from pathlib import Path

REPO_ROOT = Path(__file__).resolve().parent.parent
REQUIRED_PATHS = ["vappprops", "tests", "README.md", "requirements.txt"]


def main() -> int:
    # 1) Validate required paths exist
    os.chdir(REPO_ROOT)
    missing = [p for p in REQUIRED_PATHS if not (REPO_ROOT / p).exists()]
    if missing:
        print(f"Missing required paths: {missing}", file=sys.stderr)
        return 1
    print("Required paths OK")

    # 2) Import core modules
    sys.path.insert(0, str(REPO_ROOT))
    try:
        import vappprops.app  # noqa: F401
        from vappprops.core.models import ResourceRef, Scalar
        from vappprops.core.sections import ProductSectionManager
        from vappprops.storage.json_store import JsonSectionStore
    except Exception as e:
        print(f"Import failed: {e}", file=sys.stderr)
        return 1
    print("Core imports OK")

    # 3) Section CRUD against a temp JSON store
    with tempfile.TemporaryDirectory() as tmp_dir:
        tmp_path = Path(tmp_dir) / "sections.json"
        ref = ResourceRef(vdc="vdc", vapp="vapp")
        store = JsonSectionStore(tmp_path, create_missing=True)
        manager = ProductSectionManager(store)
        manager.set_property(ref, "key1", "a")
        manager.set_property(ref, "key2", "b")
        manager.set_property(ref, "key1", "c")
        assert manager.delete_property(ref, "key2")
        listing = manager.list_properties(ref)
        assert [(p.key, p.value) for p in listing[0].properties] == [("key1", Scalar("c"))]
        sections = store.fetch_sections(ref)
    print("JsonSectionStore CRUD OK")

    # 4) Codec against the SDK namespaces; no endpoint needed
    try:
        from vappprops.connectors.ovf_codec import parse_product_sections, sections_to_xml
        from lxml import etree

        body = etree.tostring(sections_to_xml(sections))
        assert parse_product_sections(body)[0].properties[0].key == "key1"
        print("vCD codec OK")
    except Exception as e:
        print(f"vCD codec failed: {e}", file=sys.stderr)
        return 1

    return 0


if __name__ == "__main__":
    sys.exit(main())
