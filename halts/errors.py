# halts/errors.py
"""
Error types for the halts classifier.

Error Hierarchy:
────────────────
    HaltsError (base)
    ├── LocatorError          - Source Locator failures
    │   ├── IoError           - input cannot be read
    │   ├── ParseError        - input is not valid source (also a CompileError)
    │   │   └── InvalidReferenceError - malformed ``file::path`` reference
    │   └── NotFoundError     - a path segment does not resolve
    ├── ParadoxError          - the classification question itself failed
    │   ├── CompileError      - input outside the supported grammar subset
    │   │   ├── DuplicateDefinitionError
    │   │   └── AmbiguousNameError
    │   └── InversionParadox  - self-referential classification request
    ├── ResourceLimitExceeded - traversal bound tripped
    └── InternalError         - unknown syntax node reached a dispatcher

Error Codes:
────────────
Each error carries a code ``HALT-NNNN``:
  - 0001-0999: I/O errors
  - 1000-1999: Parse errors
  - 2000-2999: Lookup errors
  - 3000-3999: Compile (structural) errors
  - 4000-4999: Paradox
  - 5000-5999: Resource limits
  - 9000-9999: Internal errors
"""

from __future__ import annotations

from enum import Enum, unique
from typing import Optional

from halts.syntax import Loc


@unique
class ErrorPhase(Enum):
    """Pipeline phase where the error occurred."""

    LOCATE = "locate"        # Reading input
    PARSE = "parse"          # Source / reference parsing
    RESOLVE = "resolve"      # Name lookup and registration
    ANALYSIS = "analysis"    # Classification
    INTERNAL = "internal"    # Dispatcher internals


class ErrorCode:
    """
    Structured error code ``PREFIX-NNNN``.
    """

    __slots__ = ("prefix", "number", "phase")

    def __init__(self, prefix: str, number: int, phase: ErrorPhase) -> None:
        self.prefix = prefix
        self.number = number
        self.phase = phase

    @property
    def code(self) -> str:
        """Get the full error code string."""
        return f"{self.prefix}-{self.number:04d}"

    def __str__(self) -> str:
        return self.code

    def __repr__(self) -> str:
        return f"ErrorCode({self.code!r}, {self.phase.name})"

    def __hash__(self) -> int:
        return hash((self.prefix, self.number))

    def __eq__(self, other: object) -> bool:
        if isinstance(other, ErrorCode):
            return self.prefix == other.prefix and self.number == other.number
        if isinstance(other, str):
            return self.code == other
        return False


class HaltsErrorCodes:
    """Predefined error codes."""

    IO_FAILURE = ErrorCode("HALT", 1, ErrorPhase.LOCATE)

    SOURCE_SYNTAX = ErrorCode("HALT", 1000, ErrorPhase.PARSE)
    INVALID_REFERENCE = ErrorCode("HALT", 1001, ErrorPhase.PARSE)

    NOT_FOUND = ErrorCode("HALT", 2000, ErrorPhase.RESOLVE)

    COMPILE_ERROR = ErrorCode("HALT", 3000, ErrorPhase.RESOLVE)
    DUPLICATE_DEFINITION = ErrorCode("HALT", 3001, ErrorPhase.RESOLVE)
    AMBIGUOUS_NAME = ErrorCode("HALT", 3002, ErrorPhase.RESOLVE)

    INVERSION_PARADOX = ErrorCode("HALT", 4000, ErrorPhase.ANALYSIS)

    RESOURCE_LIMIT = ErrorCode("HALT", 5000, ErrorPhase.ANALYSIS)

    INTERNAL_ERROR = ErrorCode("HALT", 9000, ErrorPhase.INTERNAL)


# ───────────────────────────────────────────────────────────────────────────────
# BASE
# ───────────────────────────────────────────────────────────────────────────────

class HaltsError(Exception):
    """
    Base exception for all classifier errors.

    Carries a structured code and an optional source location so the CLI
    can print GCC-style diagnostics.
    """

    default_code: ErrorCode = HaltsErrorCodes.INTERNAL_ERROR

    def __init__(
        self,
        message: str,
        code: Optional[ErrorCode] = None,
        loc: Optional[Loc] = None,
        hint: str = "",
    ) -> None:
        super().__init__(message)
        self.message = message
        self.code = code or self.default_code
        self.loc = loc
        self.hint = hint

    def to_gcc_format(self) -> str:
        """Format as ``file:line:col: error: message [CODE]``."""
        where = f"{self.loc}: " if self.loc is not None else ""
        text = f"{where}error: {self.message} [{self.code}]"
        if self.hint:
            text += f"\n  hint: {self.hint}"
        return text

    def __str__(self) -> str:
        return self.to_gcc_format()


# ───────────────────────────────────────────────────────────────────────────────
# COMPILE / PARADOX ERRORS
# ───────────────────────────────────────────────────────────────────────────────

class ParadoxError(HaltsError):
    """The classification question could not be answered."""

    default_code = HaltsErrorCodes.COMPILE_ERROR


class CompileError(ParadoxError):
    """Input does not conform to the supported grammar subset."""

    default_code = HaltsErrorCodes.COMPILE_ERROR


class DuplicateDefinitionError(CompileError):
    """A qualified name was registered twice in one registry."""

    default_code = HaltsErrorCodes.DUPLICATE_DEFINITION

    def __init__(self, name: object, loc: Optional[Loc] = None) -> None:
        super().__init__(
            f"duplicate definition of '{name}'",
            loc=loc,
        )
        self.name = name


class AmbiguousNameError(CompileError):
    """A call matches more than one definition along its scope chain."""

    default_code = HaltsErrorCodes.AMBIGUOUS_NAME

    def __init__(
        self,
        callee: object,
        candidates: tuple,
        loc: Optional[Loc] = None,
    ) -> None:
        listed = ", ".join(str(c) for c in candidates)
        super().__init__(
            f"call to '{callee}' is ambiguous between {listed}",
            loc=loc,
            hint="Rename the shadowing definition or call it by its full path",
        )
        self.callee = callee
        self.candidates = candidates


class InversionParadox(ParadoxError):
    """The function asks for its own classification."""

    default_code = HaltsErrorCodes.INVERSION_PARADOX

    def __init__(self, function: object, loc: Optional[Loc] = None) -> None:
        super().__init__(
            f"inversion paradox: '{function}' inspects its own classification",
            loc=loc,
        )
        self.function = function


# ───────────────────────────────────────────────────────────────────────────────
# LOCATOR ERRORS
# ───────────────────────────────────────────────────────────────────────────────

class LocatorError(HaltsError):
    """The Source Locator could not produce a function definition."""

    default_code = HaltsErrorCodes.IO_FAILURE


class IoError(LocatorError):
    """Input file cannot be read."""

    default_code = HaltsErrorCodes.IO_FAILURE


class ParseError(LocatorError, CompileError):
    """Input is not valid source for the supported language."""

    default_code = HaltsErrorCodes.SOURCE_SYNTAX


class InvalidReferenceError(ParseError):
    """A ``file::scope::name`` reference is malformed."""

    default_code = HaltsErrorCodes.INVALID_REFERENCE

    def __init__(self, reference: str, detail: str = "") -> None:
        message = f"invalid function reference {reference!r}"
        if detail:
            message += f": {detail}"
        super().__init__(
            message,
            hint="Expected 'path/to/file.py::Scope::function'",
        )
        self.reference = reference


class NotFoundError(LocatorError):
    """A path segment does not resolve."""

    default_code = HaltsErrorCodes.NOT_FOUND


# ───────────────────────────────────────────────────────────────────────────────
# RESOURCE / INTERNAL
# ───────────────────────────────────────────────────────────────────────────────

class ResourceLimitExceeded(HaltsError):
    """A traversal bound was exceeded."""

    default_code = HaltsErrorCodes.RESOURCE_LIMIT

    def __init__(
        self,
        limit: int,
        what: str = "functions visited",
        hint: str = "Raise --max-visited if the registry is legitimately large",
        **kwargs,
    ) -> None:
        super().__init__(f"resource limit exceeded: more than {limit} {what}", hint=hint, **kwargs)
        self.limit = limit


class InternalError(HaltsError):
    """A dispatcher met a node type outside the closed syntax model."""

    default_code = HaltsErrorCodes.INTERNAL_ERROR


__all__ = [
    "AmbiguousNameError",
    "CompileError",
    "DuplicateDefinitionError",
    "ErrorCode",
    "ErrorPhase",
    "HaltsError",
    "HaltsErrorCodes",
    "InternalError",
    "InvalidReferenceError",
    "InversionParadox",
    "IoError",
    "LocatorError",
    "NotFoundError",
    "ParadoxError",
    "ParseError",
    "ResourceLimitExceeded",
]
