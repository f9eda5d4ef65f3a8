"""Exception types raised inside the normalizer.

None of these escape transform_extraction_results(); the transformer converts
them into an ErrorDocument so callers always receive parseable JSON.
"""

import traceback
from typing import Optional

from extraction_normalizer.extraction.schemas import ErrorStage


class NormalizationError(Exception):
    """Base class for failures reported through an error document."""

    message_prefix = ""

    @property
    def stage(self) -> Optional[ErrorStage]:
        return None

    @property
    def exception_type(self) -> str:
        return type(self).__name__

    @property
    def detail(self) -> Optional[str]:
        return None

    def error_message(self) -> str:
        return f"{self.message_prefix}{self}"


class InputError(NormalizationError):
    """Raised when the caller hands over empty or missing JSON text."""

    def __init__(self, message: str = "Input JSON string is null or empty"):
        super().__init__(message)


class ProcessingError(NormalizationError):
    """Any failure while a named processing stage was in flight.

    Wraps the original exception so the error document can report its type
    name and full traceback alongside the stage.
    """

    message_prefix = "Error processing extraction results: "

    def __init__(self, stage: ErrorStage, cause: BaseException):
        super().__init__(str(cause))
        self._stage = stage
        self.cause = cause

    @property
    def stage(self) -> Optional[ErrorStage]:
        return self._stage

    @property
    def exception_type(self) -> str:
        return type(self.cause).__name__

    @property
    def detail(self) -> Optional[str]:
        return "".join(
            traceback.format_exception(type(self.cause), self.cause, self.cause.__traceback__)
        )


class ComponentDepthExceeded(ValueError):
    """Nested Components go deeper than the configured MAX_COMPONENT_DEPTH."""

    def __init__(self, limit: int, component_name: str):
        super().__init__(
            f"component nesting exceeds max depth {limit} at component '{component_name}'"
        )
        self.limit = limit
        self.component_name = component_name
