class HighlightsError(Exception):
    """Base error for the headline highlights service."""


class SourceUnavailable(HighlightsError):
    """A feed source could not be fetched or its payload could not be read."""

    def __init__(self, source_key: str, reason: str) -> None:
        super().__init__(f"{source_key}: {reason}")
        self.source_key = source_key
        self.reason = reason


class ConfigurationMissing(HighlightsError):
    """A required setting or credential is absent."""
