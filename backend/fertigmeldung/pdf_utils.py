"""
Low-level PDF utilities for filling AcroForm-based templates.

Values are written by walking the widget annotations of every page, so both
flat fields and kids of hierarchical fields are reachable by their short
(``/T``) or fully qualified name. Fields that are missing from the template,
or whose type cannot take the value, are skipped without raising.
"""

from __future__ import annotations

import io
import logging
from pathlib import Path
from typing import Any, Mapping, Optional

from pypdf import PdfReader, PdfWriter
from pypdf.generic import DictionaryObject, NameObject, TextStringObject

logger = logging.getLogger(__name__)

# /Ff bits for /Btn fields (PDF 32000-1, table 226)
_FF_RADIO = 1 << 15
_FF_PUSHBUTTON = 1 << 16

CHECKBOX_TRUE = "/ja"


def _field_of(annot: DictionaryObject) -> DictionaryObject:
    """The field dictionary a widget belongs to (itself when merged)."""
    if "/T" in annot or "/Parent" not in annot:
        return annot
    return annot["/Parent"].get_object()


def _inherited(annot: DictionaryObject, key: str) -> Any:
    node: Optional[DictionaryObject] = annot
    while node is not None:
        if key in node:
            return node[key]
        parent = node.get("/Parent")
        node = parent.get_object() if parent is not None else None
    return None


def _qualified_name(annot: DictionaryObject) -> str:
    parts = []
    node: Optional[DictionaryObject] = annot
    while node is not None:
        t = node.get("/T")
        if t:
            parts.insert(0, str(t))
        parent = node.get("/Parent")
        node = parent.get_object() if parent is not None else None
    return ".".join(parts)


def _short_name(annot: DictionaryObject) -> str:
    return str(_field_of(annot).get("/T", ""))


def _checkbox_on_state(annot: DictionaryObject) -> str:
    """Find the 'on' state name from a checkbox's appearance dict."""
    ap = annot.get("/AP")
    if ap is not None:
        normal = ap.get_object().get("/N")
        if normal is not None:
            normal = normal.get_object()
            if isinstance(normal, DictionaryObject):
                for key in normal.keys():
                    if str(key) != "/Off":
                        return str(key)
    return "/Yes"


def _wants_check(value: Any) -> bool:
    if isinstance(value, str) and value.lower() == CHECKBOX_TRUE:
        return True
    return bool(value)


def _text_value(value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


def _lookup(values: Mapping[str, Any], annot: DictionaryObject) -> Optional[str]:
    for name in (_short_name(annot), _qualified_name(annot)):
        if name and name in values:
            return name
    return None


def fill_form(template_path: Path, values: Mapping[str, Any]) -> bytes:
    """
    Fill ``template_path`` with ``values`` (field name -> value).

    Text fields receive ``str(value)``, booleans as ``"true"``/``"false"``.
    Checkboxes are checked for ``"/ja"`` (any case) or any other truthy value
    and otherwise left alone. ``None`` values and unknown field names are
    ignored.
    """
    reader = PdfReader(str(template_path), strict=False)
    writer = PdfWriter(clone_from=reader)

    pending = {k: v for k, v in values.items() if v is not None}
    filled = set()

    for page in writer.pages:
        annots = page.get("/Annots")
        if annots is None:
            continue
        for annot_ref in annots.get_object():
            annot = annot_ref.get_object()
            if annot.get("/Subtype") != "/Widget":
                continue
            name = _lookup(pending, annot)
            if name is None:
                continue
            value = pending[name]
            field = _field_of(annot)
            field_type = _inherited(annot, "/FT")

            if field_type == "/Tx":
                field[NameObject("/V")] = TextStringObject(_text_value(value))
                # stale appearance would hide the new value
                if "/AP" in annot:
                    del annot["/AP"]
                filled.add(name)
            elif field_type == "/Btn":
                flags = int(_inherited(annot, "/Ff") or 0)
                if flags & (_FF_RADIO | _FF_PUSHBUTTON):
                    logger.debug("Skipping non-checkbox button %s", name)
                    continue
                if _wants_check(value):
                    on_state = NameObject(_checkbox_on_state(annot))
                    field[NameObject("/V")] = on_state
                    annot[NameObject("/AS")] = on_state
                    filled.add(name)
            else:
                logger.debug("Skipping field %s of unsupported type %s", name, field_type)

    writer.set_need_appearances_writer(True)

    unknown = sorted(set(pending) - filled)
    if unknown:
        logger.debug("Mapped values not written: %s", ", ".join(unknown))
    logger.info("Filled template %s (%d fields)", Path(template_path).name, len(filled))

    buffer = io.BytesIO()
    writer.write(buffer)
    return buffer.getvalue()

