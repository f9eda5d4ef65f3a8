"""Fixed-schema projection of normalized data for the master log spreadsheet.

The master log has one column per (field, property) pair of EXPECTED_SCHEMA
crossed with EXPECTED_PROPERTIES, in that order. Headers depend only on the
schema; rows read the first item of each Data section and leave a cell empty
when the section, field or property is missing.

Cells are delimiter-separated (";" by default). A cell containing the
delimiter, a double quote or a line break is wrapped in quotes with inner
quotes doubled (RFC 4180 rules with a different separator).
"""

import csv
import io
import json
import logging
from typing import Any, Dict, List, Mapping, Optional, Sequence, Tuple, Union

from extraction_normalizer.core.config import get_settings
from extraction_normalizer.extraction.tree import as_values, get_child, get_object, to_text

logger = logging.getLogger("extraction_normalizer.export")

# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------

#: Section name -> ordered field names expected in that section.
EXPECTED_SCHEMA: Dict[str, List[str]] = {
    "General": ["Vendor", "Facility", "Document Type"],
    "Patient Data": ["Patient Name", "Patient Date of Birth", "Member ID"],
}

#: FieldValue properties exported for every field.
EXPECTED_PROPERTIES: List[str] = ["Value", "Confidence", "OcrConfidence", "IsExtracted"]

Document = Union[str, Mapping[str, Any]]


# ---------------------------------------------------------------------------
# Pure helpers
# ---------------------------------------------------------------------------


def _delimiter(delimiter: Optional[str]) -> str:
    return delimiter if delimiter is not None else get_settings().CSV_DELIMITER


def _format_cell(value: Any) -> str:
    """Render one FieldValue property as cell text; null/missing -> ''.

    Whole-number floats drop the trailing ".0" so the -1.0 sentinel reads
    "-1", as in the legacy master log.
    """
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    text = to_text(value)
    return "" if text is None else text


def _join_row(cells: Sequence[str], delimiter: str) -> str:
    """Join cells into one delimited line, quoting only where needed."""
    if len(cells) == 1 and cells[0] == "":
        return ""
    buf = io.StringIO()
    writer = csv.writer(buf, delimiter=delimiter, quotechar='"',
                        quoting=csv.QUOTE_MINIMAL, lineterminator="\r\n")
    writer.writerow(cells)
    return buf.getvalue()[:-2]


def _load_data(document: Document) -> Optional[dict]:
    root = json.loads(document) if isinstance(document, str) else document
    return get_object(root, "Data")


def header_cells(schema: Optional[Mapping[str, Sequence[str]]] = None,
                 properties: Optional[Sequence[str]] = None) -> List[str]:
    schema = EXPECTED_SCHEMA if schema is None else schema
    properties = EXPECTED_PROPERTIES if properties is None else properties
    return [f"{field} {prop}" for fields in schema.values() for field in fields for prop in properties]


def row_cells(document: Document, schema: Optional[Mapping[str, Sequence[str]]] = None,
              properties: Optional[Sequence[str]] = None) -> List[str]:
    """Unescaped cell values aligned with header_cells()."""
    schema = EXPECTED_SCHEMA if schema is None else schema
    properties = EXPECTED_PROPERTIES if properties is None else properties
    data = _load_data(document)

    cells: List[str] = []
    for section_name, field_names in schema.items():
        items = as_values(get_child(data, section_name))
        first_item = items[0] if items and isinstance(items[0], dict) else None
        if first_item is None:
            logger.debug("master_log_section_missing section=%r", section_name)
        for field_name in field_names:
            field_obj = get_object(first_item, field_name)
            for prop in properties:
                cells.append(_format_cell(get_child(field_obj, prop)))
    return cells


# ---------------------------------------------------------------------------
# Public views
# ---------------------------------------------------------------------------


def get_csv_headers(document: Optional[Document] = None, *,
                    schema: Optional[Mapping[str, Sequence[str]]] = None,
                    properties: Optional[Sequence[str]] = None,
                    delimiter: Optional[str] = None) -> str:
    """Header line for the master log.

    document is accepted for call-site symmetry with the row builders and is
    not read: the header depends only on the schema.
    """
    return _join_row(header_cells(schema, properties), _delimiter(delimiter))


def convert_json_to_csv_row(document: Document, *,
                            schema: Optional[Mapping[str, Sequence[str]]] = None,
                            properties: Optional[Sequence[str]] = None,
                            delimiter: Optional[str] = None) -> str:
    """Data line for the master log built from a normalized document."""
    return _join_row(row_cells(document, schema, properties), _delimiter(delimiter))


def get_csv_data(document: Document, **kwargs: Any) -> Tuple[str, str]:
    return get_csv_headers(document, **kwargs), convert_json_to_csv_row(document, **kwargs)


def get_csv_data_as_dict(document: Document, **kwargs: Any) -> Dict[str, str]:
    """{"Headers": ..., "Row": ...} for hosts that index results by name."""
    headers, row = get_csv_data(document, **kwargs)
    return {"Headers": headers, "Row": row}


def get_csv_record(document: Document, *,
                   schema: Optional[Mapping[str, Sequence[str]]] = None,
                   properties: Optional[Sequence[str]] = None) -> Dict[str, str]:
    """Ordered header -> cell mapping (one-row table view, cells unescaped)."""
    return dict(zip(header_cells(schema, properties), row_cells(document, schema, properties)))
