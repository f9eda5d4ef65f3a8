"""Top-level metadata resolution with fallback chains.

The extraction payload repeats identity data in several places and fills
them inconsistently. Each output field is resolved from an ordered list of
accessors; the first one yielding a usable value wins.

Chains (left to right):
    DocumentId   : ExtractionResult.DocumentId -> DocumentMetadata.DocumentObjectModel.DocumentId
    DocumentType : ResultsDocument.DocumentTypeName -> DocumentType.Name
    Language     : ResultsDocument.Language -> DocumentMetadata.Language
    ExtractorId  : ResultsDocument.ExtractorId -> Properties.ExtractorId
    PageRange.*  : FileDetails.PageRange.<key> -> ResultsDocument.Bounds.<key>, per key

Page-range keys are resolved independently, so StartPage may come from
FileDetails while PageCount comes from Bounds.
"""

from dataclasses import dataclass
from typing import Any, Callable, Optional, Sequence, TypeVar

from extraction_normalizer.extraction.schemas import FileDetails, PageRange
from extraction_normalizer.extraction.tree import get_object, read_int, read_text

T = TypeVar("T")
Accessor = Callable[["MetadataSources"], Optional[T]]


@dataclass(frozen=True)
class MetadataSources:
    """The raw nodes metadata is read from (any of them may be None)."""

    root: Optional[dict]
    properties: Optional[dict]
    extraction_result: Optional[dict]
    results_document: Optional[dict]

    @property
    def file_details(self) -> Optional[dict]:
        return get_object(self.root, "FileDetails")

    @property
    def file_page_range(self) -> Optional[dict]:
        return get_object(self.file_details, "PageRange")

    @property
    def bounds(self) -> Optional[dict]:
        return get_object(self.results_document, "Bounds")

    @property
    def document_metadata(self) -> Optional[dict]:
        return get_object(self.root, "DocumentMetadata")


def first_non_empty(chain: Sequence[Accessor[str]], sources: MetadataSources) -> Optional[str]:
    """Evaluate text accessors in order, stopping at the first non-empty string."""
    for accessor in chain:
        value = accessor(sources)
        if value:
            return value
    return None


def first_present(chain: Sequence[Accessor[int]], sources: MetadataSources) -> Optional[int]:
    """Evaluate numeric accessors in order; 0 counts as present."""
    for accessor in chain:
        value = accessor(sources)
        if value is not None:
            return value
    return None


DOCUMENT_ID_CHAIN: Sequence[Accessor[str]] = (
    lambda s: read_text(s.extraction_result, "DocumentId"),
    lambda s: read_text(get_object(s.document_metadata, "DocumentObjectModel"), "DocumentId"),
)

DOCUMENT_TYPE_CHAIN: Sequence[Accessor[str]] = (
    lambda s: read_text(s.results_document, "DocumentTypeName"),
    lambda s: read_text(get_object(s.root, "DocumentType"), "Name"),
)

LANGUAGE_CHAIN: Sequence[Accessor[str]] = (
    lambda s: read_text(s.results_document, "Language"),
    lambda s: read_text(s.document_metadata, "Language"),
)

EXTRACTOR_ID_CHAIN: Sequence[Accessor[str]] = (
    lambda s: read_text(s.results_document, "ExtractorId"),
    lambda s: read_text(s.properties, "ExtractorId"),
)


def page_number_chain(key: str) -> Sequence[Accessor[int]]:
    return (
        lambda s: read_int(s.file_page_range, key),
        lambda s: read_int(s.bounds, key),
    )


def page_text_chain(key: str) -> Sequence[Accessor[str]]:
    return (
        lambda s: read_text(s.file_page_range, key),
        lambda s: read_text(s.bounds, key),
    )


def resolve_page_range(sources: MetadataSources) -> PageRange:
    return PageRange(
        start_page=first_present(page_number_chain("StartPage"), sources),
        page_count=first_present(page_number_chain("PageCount"), sources),
        text_start_index=first_present(page_number_chain("TextStartIndex"), sources),
        text_length=first_present(page_number_chain("TextLength"), sources),
        page_range=first_non_empty(page_text_chain("PageRange"), sources),
    )


def resolve_file_details(sources: MetadataSources) -> FileDetails:
    details = sources.file_details
    return FileDetails(
        local_path=read_text(details, "LocalPath"),
        full_name=read_text(details, "FullName"),
        extension=read_text(details, "Extension"),
        page_range=resolve_page_range(sources),
    )


@dataclass(frozen=True)
class ResolvedMetadata:
    document_id: Optional[str]
    document_type: Optional[str]
    language: Optional[str]
    extractor_id: Optional[str]
    file_details: FileDetails


def resolve_metadata(sources: MetadataSources) -> ResolvedMetadata:
    return ResolvedMetadata(
        document_id=first_non_empty(DOCUMENT_ID_CHAIN, sources),
        document_type=first_non_empty(DOCUMENT_TYPE_CHAIN, sources),
        language=first_non_empty(LANGUAGE_CHAIN, sources),
        extractor_id=first_non_empty(EXTRACTOR_ID_CHAIN, sources),
        file_details=resolve_file_details(sources),
    )
