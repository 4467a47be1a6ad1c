import pytest

from procspec.exceptions import (
    ImproperConfigurationError,
    InvalidArgumentError,
    MissingDependencyError,
    ParameterCountMismatchError,
    ProcedureNotFoundError,
    ProcSpecError,
    UnsupportedOperationError,
)


def test_exception_hierarchy() -> None:
    """Every procspec error derives from ProcSpecError and a matching builtin."""
    assert issubclass(InvalidArgumentError, ProcSpecError)
    assert issubclass(InvalidArgumentError, ValueError)
    assert issubclass(ParameterCountMismatchError, InvalidArgumentError)
    assert issubclass(UnsupportedOperationError, NotImplementedError)
    assert issubclass(ProcedureNotFoundError, LookupError)
    assert issubclass(MissingDependencyError, ImportError)
    assert issubclass(ImproperConfigurationError, ProcSpecError)


def test_invalid_argument_default_message() -> None:
    exc = InvalidArgumentError(argument="procedure_name")
    assert str(exc) == "Value cannot be null or empty. (Parameter 'procedure_name')"
    assert exc.argument == "procedure_name"


def test_invalid_argument_custom_message() -> None:
    exc = InvalidArgumentError("Value cannot be null.", "connection")
    assert str(exc) == "Value cannot be null. (Parameter 'connection')"


def test_parameter_count_mismatch_keeps_counts() -> None:
    exc = ParameterCountMismatchError(3, 2)
    assert exc.expected == 3
    assert exc.actual == 2
    assert "expected 3, got 2" in str(exc)


def test_procedure_not_found_message() -> None:
    exc = ProcedureNotFoundError("dbo.Missing")
    assert exc.procedure_name == "dbo.Missing"
    assert "dbo.Missing" in str(exc)


def test_missing_dependency_message() -> None:
    exc = MissingDependencyError(package="pyodbc", install_package="mssql")
    assert "pip install procspec[mssql]" in str(exc)


def test_error_repr_uses_detail() -> None:
    assert repr(ProcSpecError("boom")) == "ProcSpecError - boom"
    assert repr(ProcSpecError()) == "ProcSpecError"


def test_exception_chaining() -> None:
    with pytest.raises(UnsupportedOperationError) as exc_info:
        try:
            raise ValueError("original")
        except ValueError as e:
            raise UnsupportedOperationError("mapped") from e
    assert isinstance(exc_info.value.__cause__, ValueError)
