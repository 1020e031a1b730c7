"""Error reporting protocol."""
from typing import Protocol


class ErrorReporter(Protocol):
    """Forwards exceptions to an external error tracker."""

    def capture_exception(self, error: BaseException) -> None: ...
