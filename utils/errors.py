"""
California Languages Explorer — Pipeline Errors
"""


class LanguageMapError(Exception):
    """Base class for every failure the pipeline surfaces."""


class ConfigurationError(LanguageMapError):
    """No Census API key and no cached snapshot: nothing to render."""


class FetchError(LanguageMapError, ValueError):
    """Upstream source unreachable, rejected the request, or sent malformed rows."""

    def __init__(self, stage: str, message: str):
        super().__init__(f"[{stage}] {message}")
        self.stage = stage
        self.message = message


class DataQualityError(LanguageMapError, ValueError):
    """Input rows violate an invariant of the normalization join."""


class MissingCountyTotal(DataQualityError):
    def __init__(self, geoids: list[str], missing: str):
        self.geoids = sorted(geoids)
        self.missing = missing
        super().__init__(
            f"{len(self.geoids)} counties have language rows but no {missing} row: "
            f"{', '.join(self.geoids)}"
        )


class DuplicateLabelError(DataQualityError):
    def __init__(self, labels: list[str]):
        self.labels = sorted(labels)
        super().__init__(
            f"Variable labels are not unique after cleaning: {', '.join(self.labels)}"
        )
