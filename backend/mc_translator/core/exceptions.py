"""Exception hierarchy for the translation pipeline.

Failures are contained at the smallest meaningful scope:
- unit:  TokenMismatchError
- batch: DispatchError and subclasses
- document: MalformedAssetError, IncompleteMappingError, OutputCollisionError
"""

from typing import Optional


class TranslatorError(Exception):
    """Base class for all translator errors."""


class MalformedAssetError(TranslatorError):
    """Source asset cannot be read or parsed."""

    def __init__(self, source: str, reason: str):
        super().__init__(f"{source}: {reason}")
        self.source = source
        self.reason = reason


class IncompleteMappingError(TranslatorError):
    """Strict rebuild found extracted ids without a translation."""

    def __init__(self, missing_ids: list[str]):
        preview = ", ".join(missing_ids[:5])
        more = f" (+{len(missing_ids) - 5} more)" if len(missing_ids) > 5 else ""
        super().__init__(f"Missing translations for: {preview}{more}")
        self.missing_ids = missing_ids


class TokenMismatchError(TranslatorError):
    """Protected-token markers in model output do not match the token map."""

    def __init__(self, expected: int, found: list[int]):
        super().__init__(
            f"Expected markers 0..{expected - 1} in order, found {found}"
        )
        self.expected = expected
        self.found = found


class OutputCollisionError(TranslatorError):
    """Two documents of one run render to the same output path."""

    def __init__(self, relpath: str, owner: str):
        super().__init__(f"output collision: {relpath} is already written by {owner}")
        self.relpath = relpath
        self.owner = owner


class DispatchError(TranslatorError):
    """Base class for batch dispatch failures."""


class ResponseShapeError(DispatchError):
    """Model reply is not a bare JSON string array matching the request."""


class TransientDispatchError(DispatchError):
    """Retryable transport failure (timeout, connection error, 5xx, 429)."""

    def __init__(
        self,
        message: str,
        status_code: Optional[int] = None,
        retry_after: Optional[float] = None,
    ):
        super().__init__(message)
        self.status_code = status_code
        self.retry_after = retry_after


class PermanentDispatchError(DispatchError):
    """Non-retryable failure, e.g. a 4xx other than 429."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


class DispatchCancelledError(DispatchError):
    """Run was cancelled before the batch could be (re)sent."""


class BatchFailedError(DispatchError):
    """Batch ended in a terminal failure state."""

    def __init__(self, batch_index: int, attempts: int, cause: BaseException):
        super().__init__(
            f"Batch {batch_index} failed after {attempts} attempt(s): {cause}"
        )
        self.batch_index = batch_index
        self.attempts = attempts
        self.cause = cause
