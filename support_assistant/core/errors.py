"""Exception taxonomy for the assistant core."""


class AssistantError(Exception):
    """Base class for assistant errors."""


class SessionStoreUnavailable(AssistantError):
    """The conversation history store could not be read or written."""


class ModelServiceUnavailable(AssistantError):
    """The language model could not produce any answer, fallback included."""


class VectorSearchError(AssistantError):
    """A single vector collection failed to answer a query."""

    def __init__(self, collection: str, message: str):
        super().__init__(f"{collection}: {message}")
        self.collection = collection


class PlatformApiError(AssistantError):
    """The tenant content API returned an unusable response."""


class StatisticsStoreUnavailable(AssistantError):
    """Usage statistics could not be read."""
