"""Extraction result transformer: raw engine JSON -> clean hierarchical JSON.

Pipeline (each step runs under a named ErrorStage):
    1. InputValidation             : reject empty / None input (InputError, no stage).
    2. ParseRoot                   : json.loads; root must be an object.
    3. LocateExtractionResults     : Properties.ExtractionResult.ResultsDocument.
    4. ProcessExtractedFields      : group every ResultsDocument field.
    5. ProcessTaxonomyMissingFields: optional placeholders from Properties.Taxonomy.
    6. ComputeMetadata             : fallback chains for ids, type, language, page range.
    7. BuildOutput                 : assemble NormalizedDocument.
    8. Serialize                   : indented JSON, explicit nulls.

Any exception is converted into an ErrorDocument naming the stage in flight;
data accumulated before the failure is discarded. transform_extraction_results
therefore always returns parseable JSON and never raises.
"""

import json
import logging
from typing import Optional

from extraction_normalizer.core.config import Settings, default_settings, get_settings
from extraction_normalizer.extraction.errors import InputError, NormalizationError, ProcessingError
from extraction_normalizer.extraction.metadata import MetadataSources, resolve_metadata
from extraction_normalizer.extraction.processing import (
    TraversalOptions,
    add_missing_fields,
    collect_field_groups,
)
from extraction_normalizer.extraction.schemas import (
    ErrorDocument,
    ErrorStage,
    NormalizedDocument,
    TransformResult,
)
from extraction_normalizer.extraction.tree import get_object

logger = logging.getLogger("extraction_normalizer.transform")


def error_document(error: NormalizationError) -> ErrorDocument:
    """Build the uniform failure body for any NormalizationError."""
    return ErrorDocument(
        error_message=error.error_message(),
        error_stage=error.stage,
        exception_type=error.exception_type,
        exception=error.detail,
    )


class _StageTracker:
    """Remembers which stage is running so failures can be attributed."""

    def __init__(self) -> None:
        self.current: Optional[ErrorStage] = None

    def enter(self, stage: ErrorStage) -> None:
        self.current = stage


def _build_document(json_text: str, include_missing_fields: bool, options: TraversalOptions,
                    tracker: _StageTracker) -> NormalizedDocument:
    tracker.enter(ErrorStage.PARSE_ROOT)
    root = json.loads(json_text)
    if not isinstance(root, dict):
        raise TypeError(f"root JSON value must be an object, got {type(root).__name__}")

    tracker.enter(ErrorStage.LOCATE_EXTRACTION_RESULTS)
    properties = get_object(root, "Properties")
    extraction_result = get_object(properties, "ExtractionResult")
    results_document = get_object(extraction_result, "ResultsDocument")

    tracker.enter(ErrorStage.PROCESS_EXTRACTED_FIELDS)
    data = collect_field_groups(results_document, options)

    tracker.enter(ErrorStage.PROCESS_TAXONOMY_MISSING_FIELDS)
    if include_missing_fields:
        taxonomy = get_object(properties, "Taxonomy")
        if taxonomy is not None:
            added = add_missing_fields(taxonomy, data)
            if options.debug:
                logger.debug("taxonomy_missing_fields added=%d", added)

    tracker.enter(ErrorStage.COMPUTE_METADATA)
    sources = MetadataSources(
        root=root,
        properties=properties,
        extraction_result=extraction_result,
        results_document=results_document,
    )
    meta = resolve_metadata(sources)

    tracker.enter(ErrorStage.BUILD_OUTPUT)
    return NormalizedDocument(
        document_id=meta.document_id,
        document_type=meta.document_type,
        language=meta.language,
        extractor_id=meta.extractor_id,
        file_details=meta.file_details,
        data=data,
    )


def _resolve_settings() -> Settings:
    """Configured settings, or built-in defaults when the environment is invalid."""
    try:
        return get_settings()
    except ValueError as exc:
        logger.warning("settings_invalid error=%s fallback=defaults", exc)
        return default_settings()


def normalize_extraction(json_text: Optional[str], include_missing_fields: Optional[bool] = None,
                         max_depth: Optional[int] = None,
                         settings: Optional[Settings] = None) -> TransformResult:
    """Normalize raw extraction JSON into a TransformResult (document XOR error).

    include_missing_fields / max_depth default to the configured settings when None.
    """
    if settings is None:
        settings = _resolve_settings()
    if include_missing_fields is None:
        include_missing_fields = settings.INCLUDE_MISSING_FIELDS
    options = TraversalOptions(
        max_depth=max_depth if max_depth is not None else settings.MAX_COMPONENT_DEPTH,
        debug=settings.DEBUG_EXTRACTION,
    )

    if not json_text:
        err = InputError()
        logger.warning("transform_rejected reason=empty_input")
        return TransformResult(error=error_document(err))

    tracker = _StageTracker()
    try:
        document = _build_document(json_text, include_missing_fields, options, tracker)
    except Exception as exc:
        err = ProcessingError(tracker.current, exc)
        logger.warning("transform_failed stage=%s error_type=%s error=%s",
                       tracker.current.value, err.exception_type, exc, exc_info=True)
        return TransformResult(error=error_document(err))

    logger.info("transform_success document_id=%s document_type=%s groups=%d include_missing=%s",
                document.document_id, document.document_type, len(document.data), include_missing_fields)
    return TransformResult(document=document)


def transform_extraction_results(json_text: Optional[str], include_missing_fields: bool = True) -> str:
    """Return the clean hierarchical JSON for json_text, or an error document.

    Never raises: serialization failures are reported at the Serialize stage.
    """
    settings = _resolve_settings()
    result = normalize_extraction(json_text, include_missing_fields, settings=settings)
    indent = settings.JSON_INDENT
    try:
        return result.to_json(indent=indent)
    except Exception as exc:
        err = ProcessingError(ErrorStage.SERIALIZE, exc)
        logger.warning("transform_failed stage=%s error_type=%s error=%s",
                       ErrorStage.SERIALIZE.value, err.exception_type, exc)
        return TransformResult(error=error_document(err)).to_json(indent=indent)
