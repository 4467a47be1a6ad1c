"""Exceptions raised by procspec.

Errors raised by database drivers (connectivity, permissions, syntax) are never
wrapped: they reach the caller with their original type.
"""

from typing import Any, Optional

__all__ = (
    "ImproperConfigurationError",
    "InvalidArgumentError",
    "MissingDependencyError",
    "ParameterCountMismatchError",
    "ProcSpecError",
    "ProcedureNotFoundError",
    "UnsupportedOperationError",
)


class ProcSpecError(Exception):
    """Base exception class from which all procspec exceptions inherit."""

    detail: str

    def __init__(self, *args: Any, detail: str = "") -> None:
        """Initialize ``ProcSpecError``.

        Args:
            *args: args are converted to :class:`str` before passing to :class:`Exception`
            detail: detail of the exception.
        """
        str_args = [str(arg) for arg in args if arg]
        if not detail:
            if str_args:
                detail, *str_args = str_args
            elif hasattr(self, "detail"):
                detail = self.detail
        self.detail = detail
        super().__init__(*str_args)

    def __repr__(self) -> str:
        if self.detail:
            return f"{self.__class__.__name__} - {self.detail}"
        return self.__class__.__name__

    def __str__(self) -> str:
        return " ".join((*self.args, self.detail)).strip()


class MissingDependencyError(ProcSpecError, ImportError):
    """Missing optional dependency.

    This exception is raised only when a module depends on a dependency that has not been installed.
    """

    def __init__(self, package: str, install_package: Optional[str] = None) -> None:
        super().__init__(
            f"Package {package!r} is not installed but required. You can install it by running "
            f"'pip install procspec[{install_package or package}]' to install procspec with the required extra "
            f"or 'pip install {install_package or package}' to install the package separately",
        )


class ImproperConfigurationError(ProcSpecError):
    """Raised when configuration values are invalid."""


class InvalidArgumentError(ProcSpecError, ValueError):
    """A required argument is missing, empty or out of range."""

    def __init__(self, message: Optional[str] = None, argument: Optional[str] = None) -> None:
        if message is None:
            message = "Value cannot be null or empty."
        if argument is not None:
            message = f"{message} (Parameter '{argument}')"
        self.argument = argument
        super().__init__(message)


class ParameterCountMismatchError(InvalidArgumentError):
    """The number of values does not match the number of parameters."""

    def __init__(self, expected: int, actual: int) -> None:
        self.expected = expected
        self.actual = actual
        super().__init__(f"Parameter count does not match parameter value count: expected {expected}, got {actual}.")


class UnsupportedOperationError(ProcSpecError, NotImplementedError):
    """A command kind or value outside the supported set reached a dispatch branch."""


class ProcedureNotFoundError(ProcSpecError, LookupError):
    """The database server does not know the requested stored procedure."""

    def __init__(self, procedure_name: str) -> None:
        self.procedure_name = procedure_name
        super().__init__(f"Could not find stored procedure {procedure_name!r}.")
