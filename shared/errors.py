"""Error taxonomy shared by all clients and services of the edit bridge.

Hierarchy:
  ServiceError              : any failed call to an external collaborator.
    TransientServiceError   : network failure or 5xx; degraded via fallback or retried by callers.
      EmbeddingServiceError : the embedding service could not produce a vector.
      GenerationServiceError: the generation service could not produce a reply.
      VectorBackendError    : every vector backend in the chain failed.
  ValidationError           : malformed request; fatal and surfaced to the user.
  AnchorNotFoundError       : proposed oldContent is absent from the document.
  AmbiguousOccurrenceError  : more proposed edits than literal occurrences.
  MalformedModelOutputError : generation reply is not the expected JSON shape.
"""


class ServiceError(Exception):
    """Raised when an external service answers with an error or cannot be reached.

    Attributes:
        status_code (int | None): HTTP status of the failed response, None on transport failures.
    """

    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        self.status_code = status_code


class TransientServiceError(ServiceError):
    pass


class EmbeddingServiceError(TransientServiceError):
    pass


class GenerationServiceError(TransientServiceError):
    pass


class VectorBackendError(TransientServiceError):
    pass


class ValidationError(Exception):
    """Raised for malformed requests. The message is shown to the user as-is."""


class AnchorNotFoundError(Exception):
    """Raised when a change's anchor text cannot be found verbatim in its document."""

    def __init__(self, anchor: str):
        super().__init__("Anchor text not found in document: %r" % anchor[:80])
        self.anchor = anchor


class AmbiguousOccurrenceError(Exception):
    """Raised when more changes target an anchor than the document contains occurrences of it."""

    def __init__(self, anchor: str, occurrences: int):
        super().__init__(
            "All %d occurrence(s) of anchor %r are already assigned" % (occurrences, anchor[:80])
        )
        self.anchor = anchor
        self.occurrences = occurrences


class MalformedModelOutputError(Exception):
    """Raised when a generation reply cannot be parsed into a list of changes."""
