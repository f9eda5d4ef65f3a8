"""Shared fixtures: settings cache reset and raw extraction payload builders."""
import json

import pytest

from extraction_normalizer.core.config import get_settings


@pytest.fixture(autouse=True)
def fresh_settings(monkeypatch: pytest.MonkeyPatch):
    """Isolate every test from the developer's environment / .env file."""
    for name in ("INCLUDE_MISSING_FIELDS", "MAX_COMPONENT_DEPTH", "JSON_INDENT",
                 "CSV_DELIMITER", "DEBUG_EXTRACTION", "LOG_LEVEL"):
        monkeypatch.delenv(name, raising=False)
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


def leaf(name, value, confidence=None, ocr=None, field_id=None, nested=None):
    """Build a raw Component with a single value entry."""
    entry = {"Value": value}
    if confidence is not None:
        entry["Confidence"] = confidence
    if ocr is not None:
        entry["OcrConfidence"] = ocr
    if nested is not None:
        entry["Components"] = nested
    component = {"FieldName": name, "Values": [entry]}
    if field_id is not None:
        component["FieldId"] = field_id
    return component


def field(name, *components, field_id=None):
    """Build a raw ResultsDocument field holding components in one value."""
    out = {"FieldName": name, "Values": [{"Components": list(components)}]}
    if field_id is not None:
        out["FieldId"] = field_id
    return out


def raw_payload(fields=(), taxonomy_fields=None, **extra):
    """Assemble a raw extraction root around ResultsDocument.Fields."""
    results_document = {"Fields": list(fields)}
    results_document.update(extra.pop("results_document", {}))
    root = {
        "Properties": {
            "ExtractionResult": {"ResultsDocument": results_document},
        },
    }
    root["Properties"]["ExtractionResult"].update(extra.pop("extraction_result", {}))
    root["Properties"].update(extra.pop("properties", {}))
    if taxonomy_fields is not None:
        root["Properties"]["Taxonomy"] = {"DocumentTypes": [{"Fields": taxonomy_fields}]}
    root.update(extra)
    return root


@pytest.fixture
def sample_payload():
    """Realistic payload: extracted General + Wellmed groups, a taxonomy gap."""
    return raw_payload(
        fields=[
            field(
                "General",
                leaf("Vendor", "WellMed", 0.8499, 0.99, field_id="general.vendor"),
                leaf("Facility", "Methodist Richardson Medical Center", 0.9998, 0.99),
                leaf("Document Type", "Document Type", 0.9),
            ),
            field(
                "General > Wellmed",
                leaf("Notice of approval of request for services", "False", 0.9627),
                leaf("Approved: Service requested is covered by your plan", "True", 0.7607, 0.97),
            ),
        ],
        taxonomy_fields=[
            {"FieldName": "General", "Components": [{"FieldName": "Vendor"}, {"FieldName": "Member ID"}]},
            {"FieldName": "Patient Data", "Components": [
                {"FieldName": "Patient Name"},
                {"FieldName": "Patient Date of Birth"},
                {"FieldName": "Member ID"},
            ]},
        ],
        results_document={
            "DocumentTypeName": "Default",
            "Language": "eng",
            "ExtractorId": "ml-extractor",
            "Bounds": {"StartPage": 0, "PageCount": 5, "TextStartIndex": 0, "TextLength": 8540, "PageRange": "1-5"},
        },
        extraction_result={"DocumentId": "1580d619-428f-f011-b484-000d3a57b549"},
        FileDetails={"LocalPath": "C:\\scans\\auth.PDF", "FullName": "auth", "Extension": ".PDF"},
    )


@pytest.fixture
def sample_json(sample_payload):
    return json.dumps(sample_payload)
