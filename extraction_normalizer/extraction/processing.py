"""Field traversal: raw ResultsDocument / Taxonomy -> grouped FieldValue maps.

Flow handled:
    - process_field_group: one top-level Field -> at most one (group name, group) entry.
    - process_component  : recursive walk of Components collecting accepted leaves.
    - add_missing_fields : taxonomy groups absent from the extraction become
      placeholders (Value=None, confidences -1.0, IsExtracted=False).

Group and component names are used verbatim. The extractor sometimes emits
trailing whitespace ("Vendor ") and downstream consumers key on the exact
string, so nothing here trims or normalizes names.
"""

import logging
from dataclasses import dataclass
from typing import Any, Optional

from extraction_normalizer.extraction.errors import ComponentDepthExceeded
from extraction_normalizer.extraction.schemas import (
    MISSING_CONFIDENCE,
    FieldGroup,
    FieldValue,
    GroupData,
)
from extraction_normalizer.extraction.tree import as_values, get_child, read_float, read_text

logger = logging.getLogger("extraction_normalizer.transform")


@dataclass(frozen=True)
class TraversalOptions:
    max_depth: int = 64
    debug: bool = False


def accept_leaf(value: Optional[str], component_name: str, component_id: Optional[str], confidence: float) -> bool:
    """Decide whether a raw component value counts as extracted.

    The engine echoes a component's own label (or id) as its value when it
    found nothing, and uses negative confidences as "absent"; neither is data.
    """
    if not value:
        return False
    if value == component_name or value == component_id:
        return False
    return confidence >= 0


def process_component(component: Any, group: FieldGroup, options: TraversalOptions, depth: int = 1) -> None:
    """Collect accepted leaves of component (and its nested Components) into group.

    Later leaves with the same component name overwrite earlier ones.
    """
    if not isinstance(component, dict):
        return
    name = read_text(component, "FieldName")
    if not name:
        return
    if depth > options.max_depth:
        raise ComponentDepthExceeded(options.max_depth, name)
    component_id = read_text(component, "FieldId")

    for raw_value in as_values(get_child(component, "Values")):
        if not isinstance(raw_value, dict):
            continue
        value = read_text(raw_value, "Value")
        confidence = read_float(raw_value, "Confidence", MISSING_CONFIDENCE)
        ocr_confidence = read_float(raw_value, "OcrConfidence", MISSING_CONFIDENCE)

        if accept_leaf(value, name, component_id, confidence):
            group[name] = FieldValue.extracted(value, confidence, ocr_confidence)
        elif options.debug:
            logger.debug(
                "leaf_rejected component=%r value=%r confidence=%s depth=%d",
                name, value, confidence, depth,
            )

        for nested in as_values(get_child(raw_value, "Components")):
            process_component(nested, group, options, depth + 1)


def process_field_group(field: Any, data: GroupData, options: TraversalOptions) -> None:
    """Fold one ResultsDocument field into data under its verbatim name.

    Each entry of Values yields a candidate group; a non-empty candidate
    replaces whatever was recorded for the name before (last value wins).
    """
    if not isinstance(field, dict):
        return
    group_name = read_text(field, "FieldName")
    if not group_name:
        if options.debug:
            logger.debug("field_skipped reason=empty_name field_id=%r", read_text(field, "FieldId"))
        return

    for raw_value in as_values(get_child(field, "Values")):
        group: FieldGroup = {}
        for component in as_values(get_child(raw_value, "Components")):
            process_component(component, group, options)
        if group:
            data[group_name] = [group]


def collect_field_groups(results_document: Any, options: TraversalOptions) -> GroupData:
    """Run process_field_group over every entry of ResultsDocument.Fields."""
    data: GroupData = {}
    for field in as_values(get_child(results_document, "Fields")):
        process_field_group(field, data, options)
    return data


def add_missing_fields(taxonomy: Any, data: GroupData) -> int:
    """Add placeholder groups for taxonomy fields the extraction did not produce.

    A group name already present in data is left untouched, whatever
    components it holds. Returns the number of groups added.
    """
    added = 0
    for doc_type in as_values(get_child(taxonomy, "DocumentTypes")):
        if not isinstance(doc_type, dict):
            continue
        for field in as_values(get_child(doc_type, "Fields")):
            if not isinstance(field, dict):
                continue
            field_name = read_text(field, "FieldName")
            if not field_name or field_name in data:
                continue

            placeholders: FieldGroup = {}
            for component in as_values(get_child(field, "Components")):
                component_name = read_text(component, "FieldName")
                if component_name:
                    placeholders[component_name] = FieldValue.missing()
            if placeholders:
                data[field_name] = [placeholders]
                added += 1
    return added
