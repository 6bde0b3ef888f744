"""
Result type shared by every public operation in webterm.

Domain failures never raise: they come back as ``Err`` values and the caller
decides how to render them. Only bootstrap contract violations raise.
"""

from dataclasses import dataclass
from typing import Generic, TypeVar, Union

V = TypeVar('V')
E = TypeVar('E')


@dataclass(frozen=True)
class Ok(Generic[V]):
    """Successful outcome carrying a value."""
    value: V

    @property
    def ok(self) -> bool:
        return True


@dataclass(frozen=True)
class Err(Generic[E]):
    """Failed outcome carrying an error."""
    error: E

    @property
    def ok(self) -> bool:
        return False


Result = Union[Ok[V], Err[E]]
