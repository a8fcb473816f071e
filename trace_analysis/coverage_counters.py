"""
Coverage counter data structures.
"""

from dataclasses import dataclass
from typing import Iterable, List


@dataclass(frozen=True)
class Counters:
    """Line and method counts for a class, a test batch or a project."""
    
    covered_lines: int = 0
    total_lines: int = 0
    covered_methods: int = 0
    total_methods: int = 0
    
    def __post_init__(self):
        """Validate counts after initialization."""
        if any(value < 0 for value in self.as_row()):
            raise ValueError("Coverage counts cannot be negative")
        if self.covered_lines > self.total_lines or self.covered_methods > self.total_methods:
            raise ValueError("Covered counts cannot exceed total counts")
    
    def __add__(self, other: "Counters") -> "Counters":
        return Counters(
            self.covered_lines + other.covered_lines,
            self.total_lines + other.total_lines,
            self.covered_methods + other.covered_methods,
            self.total_methods + other.total_methods
        )
    
    @property
    def line_coverage(self) -> float:
        """Calculate line coverage percentage."""
        return (self.covered_lines / self.total_lines * 100) if self.total_lines > 0 else 0.0
    
    @property
    def method_coverage(self) -> float:
        """Calculate method coverage percentage."""
        return (self.covered_methods / self.total_methods * 100) if self.total_methods > 0 else 0.0
    
    def as_row(self) -> List[int]:
        return [self.covered_lines, self.total_lines, self.covered_methods, self.total_methods]
    
    def __str__(self) -> str:
        return f"Lines {self.covered_lines}/{self.total_lines} ({self.line_coverage:.1f}%), " \
               f"Methods {self.covered_methods}/{self.total_methods} ({self.method_coverage:.1f}%)"


ZERO = Counters()


def sum_counters(counters: Iterable[Counters]) -> Counters:
    """Sum counters; the empty sum is all zeros."""
    total = ZERO
    for item in counters:
        total = total + item
    return total
