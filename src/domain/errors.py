from __future__ import annotations


class ProcessingError(Exception):
    """Base class for every error the derivation engine reports.

    ``kind`` is a stable tag clients can switch on; the message is for humans.
    """

    kind = "processing_error"

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class InvalidParameter(ProcessingError):
    kind = "invalid_parameter"


class UnknownOperation(ProcessingError):
    kind = "unknown_operation"


class NotFound(ProcessingError):
    kind = "not_found"


class Forbidden(ProcessingError):
    kind = "forbidden"


class CorruptChain(ProcessingError):
    kind = "corrupt_chain"


class PersistenceFailure(ProcessingError):
    kind = "persistence_failure"
