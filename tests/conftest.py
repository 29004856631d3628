"""Pytest configuration: import path, fake sevDesk session and a tiny form PDF."""
import io
import sys
from pathlib import Path

import pytest
import requests
from pypdf import PdfReader, PdfWriter
from pypdf.generic import (
    ArrayObject,
    DecodedStreamObject,
    DictionaryObject,
    NameObject,
    NumberObject,
    TextStringObject,
)

# Ensure backend/ is on sys.path for module resolution without installation
ROOT = Path(__file__).resolve().parents[1]
BACKEND = ROOT / "backend"
if str(BACKEND) not in sys.path:
    sys.path.insert(0, str(BACKEND))

from fertigmeldung.config import Settings  # noqa: E402

TEXT_FIELDS = ["Text1", "Text2", "Text3", "Text6", "Text7", "Text40", "kWp", "kW", "kVA"]
CHECKBOXES = ["Check1", "Check2"]

API = "https://api.sevdesk.de/api/v1"

ORDER = {
    "id": "501",
    "orderNumber": "AN-1001",
    "header": "Angebot AN-1001",
    "address": "Erika Mustermann\nMusterstr. 1\n12345 Musterstadt",
    "contact": {"id": "77", "objectName": "Contact"},
    "positions": [
        {"name": "Photovoltaikanlage 9,95 kWp"},
        {"name": "Sungrow SH10RT 10", "part": {"id": "p1"}},
        {"name": "Montage"},
    ],
}
CONTACT = {
    "id": "77",
    "surename": "Erika",
    "familyname": "Mustermann",
    "phone": "09131 1",
    "email": "e@example.com",
}

# sevDesk answers for order AN-1001
ROUTES = {
    f"{API}/Order?orderNumber=AN-1001&embed=positions": {"objects": [ORDER]},
    f"{API}/Contact/77": {"objects": [CONTACT]},
    f"{API}/Part/p1?embed=category": {"objects": [{"name": "SH10RT", "category": {"name": "Wechselrichter"}}]},
}


class FakeResponse:
    def __init__(self, payload=None, status_code=200, broken_json=False):
        self.payload = payload
        self.status_code = status_code
        self.broken_json = broken_json

    def raise_for_status(self):
        if self.status_code >= 400:
            raise requests.HTTPError(f"{self.status_code} Error")

    def json(self):
        if self.broken_json:
            raise ValueError("Expecting value: line 1 column 1 (char 0)")
        return self.payload


class FakeSession:
    """Stands in for ``requests.Session``: URL -> payload, unknown URLs fail."""

    def __init__(self, routes=None):
        self.routes = dict(routes or {})
        self.calls = []
        self.headers = []

    def get(self, url, headers=None, timeout=None):
        self.calls.append(url)
        self.headers.append(headers or {})
        if url not in self.routes:
            raise requests.ConnectionError(f"no route for {url}")
        value = self.routes[url]
        return value if isinstance(value, FakeResponse) else FakeResponse(value)

    def close(self):
        pass

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        self.close()


def _widget(writer, rect, entries):
    annot = DictionaryObject(
        {
            NameObject("/Type"): NameObject("/Annot"),
            NameObject("/Subtype"): NameObject("/Widget"),
            NameObject("/Rect"): ArrayObject([NumberObject(v) for v in rect]),
        }
    )
    for key, value in entries.items():
        annot[NameObject(key)] = value
    return writer._add_object(annot)


def build_form_pdf(path: Path, text_fields=TEXT_FIELDS, checkboxes=CHECKBOXES) -> Path:
    """Write a one-page AcroForm PDF with the given text fields and checkboxes."""

    writer = PdfWriter()
    page = writer.add_blank_page(width=595, height=842)
    annots = ArrayObject()
    fields = ArrayObject()
    y = 800

    for name in text_fields:
        ref = _widget(
            writer,
            (50, y, 300, y + 18),
            {
                "/FT": NameObject("/Tx"),
                "/T": TextStringObject(name),
            },
        )
        annots.append(ref)
        fields.append(ref)
        y -= 24

    for name in checkboxes:
        on = writer._add_object(DecodedStreamObject())
        off = writer._add_object(DecodedStreamObject())
        ref = _widget(
            writer,
            (50, y, 62, y + 12),
            {
                "/FT": NameObject("/Btn"),
                "/T": TextStringObject(name),
                "/V": NameObject("/Off"),
                "/AS": NameObject("/Off"),
                "/AP": DictionaryObject(
                    {NameObject("/N"): DictionaryObject({NameObject("/Ja"): on, NameObject("/Off"): off})}
                ),
            },
        )
        annots.append(ref)
        fields.append(ref)
        y -= 24

    page[NameObject("/Annots")] = annots
    writer._root_object[NameObject("/AcroForm")] = writer._add_object(
        DictionaryObject({NameObject("/Fields"): fields})
    )
    with path.open("wb") as f:
        writer.write(f)
    return path


def read_widgets(pdf_bytes: bytes) -> dict:
    """Map each widget's field name to ``{"V": ..., "AS": ...}``."""

    reader = PdfReader(io.BytesIO(pdf_bytes))
    out = {}
    for page in reader.pages:
        annots = page.get("/Annots")
        for ref in annots.get_object() if annots is not None else []:
            annot = ref.get_object()
            out[str(annot.get("/T"))] = {"V": annot.get("/V"), "AS": annot.get("/AS")}
    return out


@pytest.fixture
def form_pdf(tmp_path: Path) -> Path:
    return build_form_pdf(tmp_path / "template.pdf")


@pytest.fixture
def settings(tmp_path: Path, form_pdf: Path) -> Settings:
    return Settings(
        form_path=form_pdf,
        fields_template_path=tmp_path / "fields_template.json",
        timeout=5,
    )
