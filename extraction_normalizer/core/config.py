"""Runtime configuration helpers.

This module centralizes environment-driven runtime switches so the rest of the
codebase can import a single cached Settings instance.

Env vars (optional) and their roles:
        INCLUDE_MISSING_FIELDS -> Default for taxonomy gap filling when a caller does not say.
        MAX_COMPONENT_DEPTH    -> Upper bound on nested Components recursion (guards malformed input).
        JSON_INDENT            -> Indentation width of serialized output documents.
        CSV_DELIMITER          -> Separator used for master-log header/row strings.
        DEBUG_EXTRACTION       -> Verbose traversal logging (which leaves were rejected and why).
        LOG_LEVEL              -> Level applied by the command line entry point.
"""

import os
from functools import lru_cache
from dotenv import load_dotenv

load_dotenv()

_TRUTHY = {"1", "true", "True", "yes"}


class Settings:
        """Central runtime switches.

        Design notes:
        - Simple class instead of pydantic BaseSettings to minimize dependencies.
        - Values read once per get_settings() cache fill (environ overrides os.environ).
        - Call arguments always take precedence over these defaults.
        """

        def __init__(self, environ=None):
                env = os.environ if environ is None else environ

                # ---- Transformation behaviour ----
                self.INCLUDE_MISSING_FIELDS: bool = env.get("INCLUDE_MISSING_FIELDS", "1") in _TRUTHY
                self.MAX_COMPONENT_DEPTH: int = int(env.get("MAX_COMPONENT_DEPTH", "64"))
                if self.MAX_COMPONENT_DEPTH < 1:
                        raise ValueError("MAX_COMPONENT_DEPTH must be a positive integer")

                # ---- Output formatting ----
                self.JSON_INDENT: int = int(env.get("JSON_INDENT", "2"))
                if self.JSON_INDENT < 0:
                        raise ValueError("JSON_INDENT must not be negative")
                self.CSV_DELIMITER: str = env.get("CSV_DELIMITER", ";")
                if len(self.CSV_DELIMITER) != 1:
                        raise ValueError("CSV_DELIMITER must be a single character")

                # ---- Diagnostics ----
                self.DEBUG_EXTRACTION: bool = env.get("DEBUG_EXTRACTION", "0") in _TRUTHY
                self.LOG_LEVEL: str = env.get("LOG_LEVEL", "INFO").upper()


@lru_cache
def get_settings() -> Settings:
        """Return cached singleton Settings instance.

        Tests that monkeypatch the environment must call get_settings.cache_clear()
        so the next lookup re-reads os.environ.
        """
        return Settings()


def default_settings() -> Settings:
        """Settings built from built-in defaults only, ignoring the environment."""
        return Settings(environ={})
