# halts/config.py
"""Analysis configuration and process-wide constants."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Final, List

# Name of the public classification entry point. The paradox detector
# looks for calls to it; nothing may rebind it at runtime.
ENTRY_POINT: Final[str] = "halts"


@dataclass(frozen=True)
class AnalysisConfig:
    """Tuning knobs for one classification."""
    max_visited: int = 10_000

    def validate(self) -> List[str]:
        """Return a list of validation warnings (empty if valid)."""
        warnings: List[str] = []
        if self.max_visited <= 0:
            warnings.append("max_visited must be positive")
        return warnings


DEFAULT_CONFIG: Final[AnalysisConfig] = AnalysisConfig()

# Deepest nesting of statements and expressions a traversal accepts.
MAX_NESTING: Final[int] = 2_000
