"""Flatten grouped extraction data into a single field name -> value mapping.

Accepted inputs:
    * a normalized document (JSON text or parsed dict) carrying a "Data" object;
    * a raw extraction payload (Properties.ExtractionResult...), which is first
      grouped with the same traversal the transformer uses (taxonomy
      placeholders are not added, so only extracted components appear).

Merge strategy: "first occurrence wins". Component names repeat across groups
(e.g. "Name" under several parties); the earliest group in document order
keeps the key and later duplicates are ignored.
"""

import json
import logging
from typing import Any, Dict, Mapping, Optional, Union

from extraction_normalizer.core.config import get_settings
from extraction_normalizer.extraction.processing import TraversalOptions, collect_field_groups
from extraction_normalizer.extraction.tree import as_values, get_object, read_text

logger = logging.getLogger("extraction_normalizer.export")


def _load(document: Union[str, Mapping[str, Any]]) -> dict:
    root = json.loads(document) if isinstance(document, str) else dict(document)
    if not isinstance(root, dict):
        raise ValueError(f"expected a JSON object, got {type(root).__name__}")
    return root


def _data_from_raw(root: dict) -> Optional[Dict[str, Any]]:
    """Group a raw extraction payload; None when root is not one."""
    extraction_result = get_object(get_object(root, "Properties"), "ExtractionResult")
    if extraction_result is None:
        return None
    settings = get_settings()
    options = TraversalOptions(max_depth=settings.MAX_COMPONENT_DEPTH, debug=settings.DEBUG_EXTRACTION)
    groups = collect_field_groups(get_object(extraction_result, "ResultsDocument"), options)
    return {
        name: [{component: leaf.model_dump(by_alias=True) for component, leaf in group.items()} for group in items]
        for name, items in groups.items()
    }


def flatten_extraction(document: Union[str, Mapping[str, Any]]) -> Dict[str, Optional[str]]:
    """Return {component name: Value} across every group of the document.

    Raises ValueError if the input is neither a normalized document nor a
    raw extraction payload.
    """
    root = _load(document)
    data = get_object(root, "Data")
    if data is None:
        data = _data_from_raw(root)
    if data is None:
        raise ValueError("document has neither a 'Data' object nor Properties.ExtractionResult")

    flat: Dict[str, Optional[str]] = {}
    for section in data.values():
        for item in as_values(section):
            if not isinstance(item, dict):
                continue
            for name, leaf in item.items():
                if name not in flat:
                    flat[name] = read_text(leaf, "Value")
    logger.debug("flatten_done sections=%d keys=%d", len(data), len(flat))
    return flat
