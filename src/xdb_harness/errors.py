"""Exception hierarchy for the harness.

Failures are classified by the phase that produced them so the driver can
attribute them to a combination:

- ``SetupError``: a backend or the engine rejected a provisioning call.
- ``ResponseMismatch``: a response did not match its expected value.
- ``TeardownError``: cleanup failed; state may leak into later combinations.
- ``HarnessFatalError``: teardown kept failing, later results are untrustworthy.

Usage:
    from xdb_harness.errors import EngineError, SetupError
"""

from typing import Any


class HarnessError(Exception):
    """Base class for all harness errors."""

    pass


class ConfigurationError(HarnessError):
    """Raised when the harness or a suite is configured inconsistently.

    Surfaces at suite-construction time (e.g. conflicting context options),
    never in the middle of a run.
    """

    pass


class EngineError(HarnessError):
    """Raised when the query engine rejects a metadata call.

    Attributes:
        status_code: HTTP status returned by the engine.
        code: Engine error code (e.g. ``"already-untracked"``), if any.
        path: JSON path of the offending argument, if reported.
        body: Decoded response body.
    """

    def __init__(
        self,
        message: str,
        status_code: int,
        code: str | None = None,
        path: str | None = None,
        body: Any = None,
    ) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.code = code
        self.path = path
        self.body = body


class SetupError(HarnessError):
    """Raised when a combination's local state or setup could not be created."""

    def __init__(self, context_name: str, cause: BaseException) -> None:
        super().__init__(f"[{context_name}] setup failed: {cause}")
        self.context_name = context_name
        self.cause = cause


class TeardownError(HarnessError):
    """Raised when a combination's teardown fails."""

    def __init__(self, context_name: str, cause: BaseException) -> None:
        super().__init__(f"[{context_name}] teardown failed: {cause}")
        self.context_name = context_name
        self.cause = cause


class TeardownWarning(UserWarning):
    """Warning category for teardown failures (possible state leakage)."""

    pass


class HarnessFatalError(HarnessError):
    """Raised when repeated teardown failures make further results untrustworthy."""

    pass


class ResponseMismatch(AssertionError):
    """An engine response did not match the expected value.

    The message carries the combination name and a unified diff of the
    expected and actual values rendered as YAML.
    """

    def __init__(self, message: str, expected: Any, actual: Any) -> None:
        super().__init__(message)
        self.expected = expected
        self.actual = actual
