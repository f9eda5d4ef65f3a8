"""Pydantic models for normalized extraction output.

Layers / roles:
    FieldValue          : One normalized leaf (value + confidences + extracted flag).
    PageRange           : Page/text span the result document covers.
    FileDetails         : Source file description copied from the raw payload.
    NormalizedDocument  : Success shape (fixed top-level key order, see below).
    ErrorStage          : Fixed vocabulary of processing stages reported on failure.
    ErrorDocument       : Failure shape returned instead of raising.
    TransformResult     : Either a NormalizedDocument or an ErrorDocument.

Output keys are PascalCase (the host automation runtime reads them that way),
so every model declares explicit aliases and is dumped with by_alias=True.
Python code constructs and reads models through the snake_case names.

Key order on the wire follows declaration order; do not reorder fields.
"""

from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field

MISSING_CONFIDENCE = -1.0  # Sentinel for "no confidence reported"


def utc_timestamp() -> str:
    """Current UTC time in round-trip form: 7 fractional digits and a 'Z' suffix."""
    return datetime.now(timezone.utc).strftime("%Y-%m-%dT%H:%M:%S.%f") + "0Z"


class _AliasedModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True)


class FieldValue(_AliasedModel):
    """Normalized wrapper for a single component value.

    value          : Extracted text; None when the component was not found.
    confidence     : Extraction confidence (0..1), -1.0 when absent.
    ocr_confidence : OCR confidence (0..1), -1.0 when absent.
    is_extracted   : True only for leaves that passed the acceptance rule.
    """

    value: Optional[str] = Field(None, alias="Value")
    confidence: float = Field(MISSING_CONFIDENCE, alias="Confidence")
    ocr_confidence: float = Field(MISSING_CONFIDENCE, alias="OcrConfidence")
    is_extracted: bool = Field(False, alias="IsExtracted")

    @classmethod
    def extracted(cls, value: str, confidence: float, ocr_confidence: float) -> "FieldValue":
        return cls(value=value, confidence=confidence, ocr_confidence=ocr_confidence, is_extracted=True)

    @classmethod
    def missing(cls) -> "FieldValue":
        """Placeholder for a taxonomy component the document did not yield."""
        return cls(value=None, confidence=MISSING_CONFIDENCE, ocr_confidence=MISSING_CONFIDENCE, is_extracted=False)


# component name -> leaf; insertion order is output order
FieldGroup = Dict[str, FieldValue]
# group name -> single-element list holding the group (wire shape is [ {..} ])
GroupData = Dict[str, List[FieldGroup]]


class PageRange(_AliasedModel):
    start_page: Optional[int] = Field(None, alias="StartPage")
    page_count: Optional[int] = Field(None, alias="PageCount")
    text_start_index: Optional[int] = Field(None, alias="TextStartIndex")
    text_length: Optional[int] = Field(None, alias="TextLength")
    # Formatted span such as "1-5"; sibling-named like its parent on purpose.
    page_range: Optional[str] = Field(None, alias="PageRange")


class FileDetails(_AliasedModel):
    local_path: Optional[str] = Field(None, alias="LocalPath")
    full_name: Optional[str] = Field(None, alias="FullName")
    extension: Optional[str] = Field(None, alias="Extension")
    page_range: PageRange = Field(default_factory=PageRange, alias="PageRange")


class NormalizedDocument(_AliasedModel):
    """Clean hierarchical view of one extraction result.

    data maps each field group name (verbatim from the extractor, trailing
    whitespace included) to a one-element list containing its components.
    """

    document_id: Optional[str] = Field(None, alias="DocumentId")
    document_type: Optional[str] = Field(None, alias="DocumentType")
    language: Optional[str] = Field(None, alias="Language")
    extractor_id: Optional[str] = Field(None, alias="ExtractorId")
    processed_date_time: str = Field(default_factory=utc_timestamp, alias="ProcessedDateTime")
    file_details: FileDetails = Field(default_factory=FileDetails, alias="FileDetails")
    data: GroupData = Field(default_factory=dict, alias="Data")


class ErrorStage(str, Enum):
    INPUT_VALIDATION = "InputValidation"
    PARSE_ROOT = "ParseRoot"
    LOCATE_EXTRACTION_RESULTS = "LocateExtractionResults"
    PROCESS_EXTRACTED_FIELDS = "ProcessExtractedFields"
    PROCESS_TAXONOMY_MISSING_FIELDS = "ProcessTaxonomyMissingFields"
    COMPUTE_METADATA = "ComputeMetadata"
    BUILD_OUTPUT = "BuildOutput"
    SERIALIZE = "Serialize"


class ErrorDocument(_AliasedModel):
    """Uniform failure body.

    Identity fields are always empty strings and Data is always an empty
    object so consumers can read both shapes with the same code.
    """

    document_id: str = Field("", alias="DocumentId")
    document_type: str = Field("", alias="DocumentType")
    language: str = Field("", alias="Language")
    file_name: str = Field("", alias="FileName")
    processed_date_time: str = Field(default_factory=utc_timestamp, alias="ProcessedDateTime")
    error_message: str = Field(..., alias="ErrorMessage")
    error_stage: Optional[ErrorStage] = Field(None, alias="ErrorStage")
    exception_type: Optional[str] = Field(None, alias="ExceptionType")
    exception: Optional[str] = Field(None, alias="Exception")
    data: Dict[str, Any] = Field(default_factory=dict, alias="Data")


class TransformResult(BaseModel):
    """Either the normalized document or the error that replaced it."""

    document: Optional[NormalizedDocument] = None
    error: Optional[ErrorDocument] = None

    @property
    def ok(self) -> bool:
        return self.error is None

    def to_json(self, indent: Optional[int] = 2) -> str:
        payload = self.document if self.error is None else self.error
        return payload.model_dump_json(by_alias=True, indent=indent)
