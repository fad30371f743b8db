# ===================================== IMPORTS ====================================== #

# Standard Library Imports
from typing import Iterable, Optional

# ==================================== EXCEPTIONS ==================================== #

class SoilMagsError(Exception):
    """Base exception for soil_mags errors."""
    pass


class SchemaMismatchError(SoilMagsError):
    """A loaded source is missing one or more required columns."""

    def __init__(self, source: str, missing: Iterable[str], location: Optional[str] = None):
        self.source = source
        self.missing = sorted(missing)
        self.location = location
        where = f" ({location})" if location else ""
        super().__init__(
            f"{source} metadata{where} missing required columns: {self.missing}"
        )


class MalformedIdentifierError(SoilMagsError):
    """A composite identifier could not be split at a mandatory separator."""

    def __init__(self, source: str, value: object, reason: str):
        self.source = source
        self.value = value
        self.reason = reason
        super().__init__(f"Malformed {source} identifier {value!r}: {reason}")


class PipelineError(SoilMagsError):
    """Custom exception for pipeline-related errors."""
    pass

# ===================================== WARNINGS ===================================== #

class EmptyResultWarning(UserWarning):
    """A filter, join or prune step produced no rows or leaves."""
    pass
