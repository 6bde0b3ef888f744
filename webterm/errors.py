"""
Error taxonomy for webterm.

Each component reports its own kind of failure:

- LexError: illegal character, unterminated quote, option without value
- ParseError: unexpected token kind, missing redirect target
- FsFailure: filesystem failures, tagged with an FsError kind
- DispatchError: command not found, missing operand, bad arguments

These are plain values carried inside ``Err``. BootstrapError is the only
exception, raised when the initial filesystem breaks the session contract.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Optional


class LexErrorKind(Enum):
    """Ways the lexer can reject input."""
    ILLEGAL_CHARACTER = 'illegal character'
    UNTERMINATED_QUOTE = 'unterminated quote'
    OPTION_WITHOUT_VALUE = 'option without value'


@dataclass(frozen=True)
class LexError:
    """A lexer failure at a given offset in the command text."""
    kind: LexErrorKind
    offset: int
    char: Optional[str] = None

    def __str__(self) -> str:
        if self.char is not None:
            return f"{self.kind.value} '{self.char}' at {self.offset}"
        return f"{self.kind.value} at {self.offset}"


@dataclass(frozen=True)
class ParseError:
    """A parser failure; offset is the lexer position when it was detected."""
    message: str
    offset: int

    def __str__(self) -> str:
        return self.message


class FsError(Enum):
    """POSIX-like filesystem failure kinds."""
    NO_SUCH_FILE_OR_DIRECTORY = 'No such file or directory'
    NOT_A_DIRECTORY = 'Not a directory'
    IS_A_DIRECTORY = 'Is a directory'
    FILE_EXISTS = 'File exists'
    OPERATION_REFUSED = 'Operation refused: protected path'


@dataclass(frozen=True)
class FsFailure:
    """
    A filesystem failure for a path.

    ``action`` gives the utility-style lead-in, so the rendered text reads
    like ``cannot create directory 'a': File exists``. Without it the text
    is ``a: No such file or directory``.
    """
    kind: FsError
    path: str
    action: Optional[str] = None

    def __str__(self) -> str:
        if self.action:
            return f"{self.action} '{self.path}': {self.kind.value}"
        return f"{self.path}: {self.kind.value}"


class DispatchError(Enum):
    """Failures raised by the command dispatcher itself."""
    COMMAND_NOT_FOUND = 'Command not found'
    MISSING_OPERAND = 'missing operand'
    TOO_MANY_ARGUMENTS = 'too many arguments'
    INVALID_OPTION = 'invalid option'
    UNRECOGNIZED_OPTION = 'unrecognized option'


class BootstrapError(Exception):
    """The initial filesystem does not satisfy the session contract."""
