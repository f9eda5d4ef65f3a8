"""Tests for the top-level transformer.

Covers:
- the Vendor and Patient Name scenarios end to end
- exact top-level / FileDetails / PageRange key order and explicit nulls
- include_missing_fields on / off (argument and setting default)
- error documents for empty input, malformed JSON and failures in later stages
- ProcessedDateTime generated at call time in ISO-8601 UTC
"""
import json
import re
from datetime import datetime

import pytest

from conftest import field, leaf, raw_payload
from extraction_normalizer.core.config import get_settings
from extraction_normalizer.extraction import transformer
from extraction_normalizer.extraction.schemas import ErrorStage
from extraction_normalizer.extraction.transformer import normalize_extraction, transform_extraction_results

ERROR_KEYS = [
    "DocumentId", "DocumentType", "Language", "FileName", "ProcessedDateTime",
    "ErrorMessage", "ErrorStage", "ExceptionType", "Exception", "Data",
]


def run(payload, **kwargs):
    return json.loads(transform_extraction_results(json.dumps(payload), **kwargs))


# ---------------------------------------------------------------------------
# Success path
# ---------------------------------------------------------------------------


def test_vendor_scenario():
    payload = {"Properties": {"ExtractionResult": {"ResultsDocument": {"Fields": [
        {"FieldName": "Vendor", "Values": [{"Components": [
            {"FieldName": "Vendor", "Values": [{"Value": "WellMed", "Confidence": 0.85}]},
        ]}]},
    ]}}}}
    out = run(payload)
    assert out["Data"]["Vendor"] == [
        {"Vendor": {"Value": "WellMed", "Confidence": 0.85, "OcrConfidence": -1.0, "IsExtracted": True}}
    ]


def test_patient_name_missing_scenario():
    payload = raw_payload(
        taxonomy_fields=[{"FieldName": "Patient Name", "Components": [{"FieldName": "Patient Name"}]}],
    )
    out = run(payload, include_missing_fields=True)
    assert out["Data"]["Patient Name"] == [
        {"Patient Name": {"Value": None, "Confidence": -1.0, "OcrConfidence": -1.0, "IsExtracted": False}}
    ]


def test_output_key_order_and_nulls(sample_json):
    text = transform_extraction_results(sample_json)
    out = json.loads(text)
    assert list(out) == [
        "DocumentId", "DocumentType", "Language", "ExtractorId", "ProcessedDateTime", "FileDetails", "Data",
    ]
    assert list(out["FileDetails"]) == ["LocalPath", "FullName", "Extension", "PageRange"]
    assert list(out["FileDetails"]["PageRange"]) == [
        "StartPage", "PageCount", "TextStartIndex", "TextLength", "PageRange",
    ]
    assert "\n  " in text  # indented

    sparse = transform_extraction_results(json.dumps(raw_payload()))
    assert '"DocumentId": null' in sparse
    assert '"LocalPath": null' in sparse


def test_sample_document_content(sample_json):
    out = json.loads(transform_extraction_results(sample_json))
    assert out["DocumentId"] == "1580d619-428f-f011-b484-000d3a57b549"
    assert out["DocumentType"] == "Default"
    assert out["Language"] == "eng"
    assert out["ExtractorId"] == "ml-extractor"
    assert out["FileDetails"]["FullName"] == "auth"
    assert out["FileDetails"]["PageRange"] == {
        "StartPage": 0, "PageCount": 5, "TextStartIndex": 0, "TextLength": 8540, "PageRange": "1-5",
    }
    general = out["Data"]["General"]
    assert len(general) == 1
    # echoed label is not data; extracted group is not merged with taxonomy components
    assert list(general[0]) == ["Vendor", "Facility"]
    assert general[0]["Vendor"]["OcrConfidence"] == 0.99
    assert list(out["Data"]) == ["General", "General > Wellmed", "Patient Data"]
    assert all(not v["IsExtracted"] for v in out["Data"]["Patient Data"][0].values())


def test_extracted_only(sample_json):
    out = json.loads(transform_extraction_results(sample_json, include_missing_fields=False))
    assert list(out["Data"]) == ["General", "General > Wellmed"]


def test_setting_controls_default_when_flag_is_none(monkeypatch, sample_json):
    monkeypatch.setenv("INCLUDE_MISSING_FIELDS", "0")
    get_settings.cache_clear()
    result = normalize_extraction(sample_json)
    assert "Patient Data" not in result.document.data
    assert "Patient Data" in normalize_extraction(sample_json, include_missing_fields=True).document.data


def test_leaves_with_negative_confidence_never_extracted():
    payload = raw_payload(
        fields=[field("General", leaf("Vendor", "WellMed", -1.0, 0.99), leaf("Facility", "Clinic", 0.4))],
        taxonomy_fields=[{"FieldName": "General", "Components": [{"FieldName": "Vendor"}]}],
    )
    out = run(payload)
    assert "Vendor" not in out["Data"]["General"][0]
    for group in out["Data"].values():
        for comp in group[0].values():
            if comp["Confidence"] < 0:
                assert comp["IsExtracted"] is False and comp["Value"] is None


def test_processed_date_time_is_current_utc():
    payload = raw_payload(ProcessedDateTime="1999-01-01T00:00:00Z")
    out = run(payload)
    text = out["ProcessedDateTime"]
    assert re.fullmatch(r"\d{4}-\d{2}-\d{2}T\d{2}:\d{2}:\d{2}\.\d{7}Z", text)
    stamp = datetime.strptime(text[:26], "%Y-%m-%dT%H:%M:%S.%f")
    assert stamp.year >= 2024


def test_calls_do_not_share_state(sample_json):
    first = normalize_extraction(sample_json).document
    first.data.clear()
    second = normalize_extraction(sample_json).document
    assert "General" in second.data


# ---------------------------------------------------------------------------
# Error documents
# ---------------------------------------------------------------------------


@pytest.mark.parametrize("empty", ["", None])
def test_empty_input_error_document(empty):
    out = json.loads(transform_extraction_results(empty))
    assert list(out) == ERROR_KEYS
    assert out["ErrorMessage"] == "Input JSON string is null or empty"
    assert out["ErrorStage"] is None
    assert out["ExceptionType"] == "InputError"
    assert out["Data"] == {}
    assert out["DocumentId"] == "" and out["FileName"] == ""


def test_malformed_json_reports_parse_root():
    out = json.loads(transform_extraction_results("{not json"))
    assert out["ErrorStage"] == "ParseRoot"
    assert out["ErrorMessage"].startswith("Error processing extraction results: ")
    assert out["ExceptionType"] == "JSONDecodeError"
    assert "Traceback" in out["Exception"]


def test_non_object_root_reports_parse_root():
    out = json.loads(transform_extraction_results("[1, 2]"))
    assert out["ErrorStage"] == "ParseRoot"
    assert out["ExceptionType"] == "TypeError"


def test_missing_results_document_still_succeeds():
    out = json.loads(transform_extraction_results('{"Properties": {"ExtractionResult": 5}}'))
    assert out["Data"] == {}
    assert "ErrorMessage" not in out


def test_excessive_nesting_reports_extracted_fields_stage():
    node = leaf("L1", "v", 0.5)
    for level in range(2, 12):
        node = leaf("L%d" % level, "v", 0.5, nested=[node])
    payload = raw_payload(fields=[field("Deep", node)])
    result = normalize_extraction(json.dumps(payload), max_depth=5)
    assert not result.ok
    assert result.error.error_stage is ErrorStage.PROCESS_EXTRACTED_FIELDS
    assert result.error.exception_type == "ComponentDepthExceeded"


def test_invalid_page_range_reports_compute_metadata_and_discards_data():
    payload = raw_payload(
        fields=[field("General", leaf("Vendor", "WellMed", 0.9))],
        FileDetails={"PageRange": {"StartPage": "first"}},
    )
    out = run(payload)
    assert out["ErrorStage"] == "ComputeMetadata"
    assert out["Data"] == {}


def test_failure_in_taxonomy_stage_is_attributed(monkeypatch, sample_json):
    def boom(taxonomy, data):
        raise KeyError("taxonomy")

    monkeypatch.setattr(transformer, "add_missing_fields", boom)
    out = json.loads(transform_extraction_results(sample_json))
    assert out["ErrorStage"] == "ProcessTaxonomyMissingFields"
    assert out["ExceptionType"] == "KeyError"


def test_serialize_failure_returns_error_document(monkeypatch, sample_json):
    def broken(self, indent=2):
        if self.error is None:
            raise RuntimeError("encoder down")
        return self.error.model_dump_json(by_alias=True, indent=indent)

    monkeypatch.setattr(transformer.TransformResult, "to_json", broken)
    out = json.loads(transform_extraction_results(sample_json))
    assert out["ErrorStage"] == "Serialize"
    assert out["ExceptionType"] == "RuntimeError"


def test_oversized_confidence_does_not_fail_document():
    payload = raw_payload(fields=[field(
        "General",
        leaf("Vendor", "WellMed", 0.85),
        leaf("Facility", "Methodist", 10 ** 400),
    )])
    out = run(payload)
    assert "ErrorMessage" not in out
    assert list(out["Data"]["General"][0]) == ["Vendor"]


# ---------------------------------------------------------------------------
# Invalid environment
# ---------------------------------------------------------------------------


@pytest.mark.parametrize(
    "name, value",
    [("MAX_COMPONENT_DEPTH", "abc"), ("JSON_INDENT", "x"), ("CSV_DELIMITER", ";;"), ("MAX_COMPONENT_DEPTH", "0")],
)
def test_invalid_settings_fall_back_to_defaults(monkeypatch, sample_json, name, value):
    monkeypatch.setenv(name, value)
    get_settings.cache_clear()
    out = json.loads(transform_extraction_results(sample_json))
    assert out["Data"]["General"][0]["Vendor"]["Value"] == "WellMed"
    assert json.loads(transform_extraction_results("{not json"))["ErrorStage"] == "ParseRoot"
