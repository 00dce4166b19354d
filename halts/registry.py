# halts/registry.py
"""
Function registry: immutable map from qualified name to definition.

A registry is built once per analysis session and passed explicitly to
the analyzers; there is no module-level default instance.
"""

from __future__ import annotations

import logging
from types import MappingProxyType
from typing import Iterable, Iterator, List, Mapping, Optional

from halts.errors import AmbiguousNameError, DuplicateDefinitionError
from halts.syntax import FunctionDefinition, Loc, QualifiedName, walk_definitions

logger = logging.getLogger(__name__)

# Receivers that name the class enclosing a method.
_RECEIVERS = frozenset({"self", "cls"})


class FunctionRegistry(Mapping[QualifiedName, FunctionDefinition]):
    """
    Registry of function definitions keyed by ``QualifiedName``.

    Usage
    -----
    >>> registry = FunctionRegistry.build([outer, helper])
    >>> registry.resolve(QualifiedName.of("helper"), scope=outer.name)
    FunctionDefinition(name=QualifiedName(parts=('helper',)), ...)

    ``class_scopes`` lists the qualified names that are class bodies.
    Python does not let a method see names defined in its class body, so
    name resolution skips those scopes unless the call goes through
    ``self`` / ``cls``.
    """

    def __init__(
        self,
        definitions: Iterable[FunctionDefinition] = (),
        class_scopes: Iterable[QualifiedName] = (),
    ) -> None:
        functions = {}
        for fn in definitions:
            if fn.name in functions:
                raise DuplicateDefinitionError(fn.name, loc=fn.loc)
            functions[fn.name] = fn
        self._functions: Mapping[QualifiedName, FunctionDefinition] = MappingProxyType(functions)
        self._class_scopes = frozenset(class_scopes)

    @classmethod
    def build(
        cls,
        functions: Iterable[FunctionDefinition],
        class_scopes: Iterable[QualifiedName] = (),
    ) -> FunctionRegistry:
        """Register *functions* and every definition nested inside them."""
        return cls(walk_definitions(functions), class_scopes)

    def including(self, function: FunctionDefinition) -> FunctionRegistry:
        """Return a new registry that also holds *function* and its nested definitions."""
        logger.debug("extending registry of %d with %s", len(self._functions), function.name)
        return FunctionRegistry(
            list(self._functions.values()) + list(walk_definitions([function])),
            self._class_scopes,
        )

    # ----- Mapping protocol -------------------------------------------------

    def __getitem__(self, name: QualifiedName) -> FunctionDefinition:
        return self._functions[name]

    def __iter__(self) -> Iterator[QualifiedName]:
        return iter(self._functions)

    def __len__(self) -> int:
        return len(self._functions)

    def __repr__(self) -> str:
        return f"<FunctionRegistry functions={len(self._functions)}>"

    @property
    def class_scopes(self) -> frozenset:
        return self._class_scopes

    # ----- name resolution --------------------------------------------------

    def candidates(self, callee: QualifiedName, scope: QualifiedName) -> List[QualifiedName]:
        """Qualified names *callee* may denote when called from *scope*.

        *scope* is the qualified name of the calling function. Candidates
        run from the innermost scope (the caller's own nested definitions)
        out to module level.
        """
        if not callee.parts:
            return []
        if callee.parts[0] in _RECEIVERS and len(callee) > 1:
            if len(scope) < 2:
                return []
            return [scope.scope.join(QualifiedName(callee.parts[1:]))]

        out: List[QualifiedName] = []
        for i in range(len(scope), -1, -1):
            prefix = QualifiedName(scope.parts[:i])
            if i > 0 and prefix in self._class_scopes:
                continue
            out.append(prefix.join(callee))
        return out

    def resolve(
        self,
        callee: QualifiedName,
        scope: QualifiedName,
        loc: Optional[Loc] = None,
    ) -> Optional[FunctionDefinition]:
        """Resolve *callee* as seen from *scope*.

        Returns ``None`` for names defined outside the registry (builtins,
        imports). Raises ``AmbiguousNameError`` when more than one
        definition along the scope chain matches.
        """
        found = [c for c in self.candidates(callee, scope) if c in self._functions]
        if not found:
            return None
        if len(found) > 1:
            raise AmbiguousNameError(callee, tuple(found), loc=loc)
        return self._functions[found[0]]
