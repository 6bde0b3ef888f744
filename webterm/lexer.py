"""
Lexer for webterm command lines.

Turns the raw text of one input line into a stream of typed tokens:
arguments (bare or quoted), short and long options, and the two output
redirection operators. The lexer is a pure scan over an internal cursor.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Callable, List, Optional

from .errors import LexError, LexErrorKind
from .results import Err, Ok, Result


class TokenKind(Enum):
    """Kinds of tokens produced by the lexer."""
    LONG_OPTION = 'long_option'
    SHORT_OPTION = 'short_option'
    ARGUMENT = 'argument'
    REDIRECT_WRITE = 'redirect_write'
    REDIRECT_APPEND = 'redirect_append'


@dataclass(frozen=True)
class Token:
    """A token and the span of command text it came from."""
    offset: int
    length: int
    kind: TokenKind
    value: str = ''  # option name or argument text; empty for redirects


WHITESPACE = ' \t\r\n'
QUOTES = '\'"'
METACHARACTERS = '|<;&()`'
OPTION_PUNCTUATION = '_./-'
QUOTED_ESCAPES = {'n': '\n', 't': '\t', '0': '\0'}


def is_option_char(char: str) -> bool:
    """Characters allowed in an option name."""
    return char.isalnum() or char in OPTION_PUNCTUATION


def is_bare_char(char: str) -> bool:
    """Characters allowed in an unquoted argument."""
    return (char.isprintable()
            and char not in WHITESPACE
            and char not in QUOTES
            and char not in METACHARACTERS
            and char != '>')


class CommandLexer:
    """
    Scanner producing one token per call to ``next``.

    Returns ``Ok(token)``, ``Ok(None)`` once the input is exhausted, or
    ``Err(LexError)``. After an illegal character the cursor has still moved
    past it, so scanning can resume.
    """

    def __init__(self, text: str):
        self.text = text
        self.index = 0

    @property
    def position(self) -> int:
        """Current cursor offset into the text."""
        return self.index

    def _done(self) -> bool:
        return self.index >= len(self.text)

    def _current(self) -> str:
        return self.text[self.index]

    def _peek(self) -> Optional[str]:
        if self.index + 1 < len(self.text):
            return self.text[self.index + 1]
        return None

    def _skip_whitespace(self) -> None:
        while not self._done() and self._current() in WHITESPACE:
            self.index += 1

    def next(self) -> Result[Optional[Token], LexError]:
        """Scan and return the next token."""
        self._skip_whitespace()
        if self._done():
            return Ok(None)

        start = self.index
        char = self._current()

        if char == '-':
            if self._peek() == '-':
                self.index += 2
                return self._option(start, TokenKind.LONG_OPTION)
            self.index += 1
            return self._option(start, TokenKind.SHORT_OPTION)

        if char == '>':
            self.index += 1
            if not self._done() and self._current() == '>':
                self.index += 1
                return Ok(Token(start, 2, TokenKind.REDIRECT_APPEND))
            return Ok(Token(start, 1, TokenKind.REDIRECT_WRITE))

        if char in QUOTES:
            return self._quoted(start, char)

        if is_bare_char(char):
            value = self._run(is_bare_char, trailing_backslash=True)
            return Ok(Token(start, self.index - start, TokenKind.ARGUMENT, value))

        self.index += 1
        return Err(LexError(LexErrorKind.ILLEGAL_CHARACTER, start, char))

    def _run(self, accept: Callable[[str], bool], trailing_backslash: bool = False) -> str:
        """Consume characters accepted by ``accept``; ``\\x`` escapes x."""
        chars = []
        while not self._done():
            char = self._current()
            if char == '\\':
                escaped = self._peek()
                if escaped is None:
                    if trailing_backslash:
                        chars.append(char)
                        self.index += 1
                    break
                chars.append(escaped)
                self.index += 2
            elif accept(char):
                chars.append(char)
                self.index += 1
            else:
                break
        return ''.join(chars)

    def _option(self, start: int, kind: TokenKind) -> Result[Optional[Token], LexError]:
        name = self._run(is_option_char)
        if not name:
            return Err(LexError(LexErrorKind.OPTION_WITHOUT_VALUE, start))
        return Ok(Token(start, self.index - start, kind, name))

    def _quoted(self, start: int, quote: str) -> Result[Optional[Token], LexError]:
        self.index += 1
        chars = []
        while not self._done():
            char = self._current()
            if char == quote:
                self.index += 1
                return Ok(Token(start, self.index - start, TokenKind.ARGUMENT, ''.join(chars)))
            if char == '\\':
                escaped = self._peek()
                if escaped is None:
                    self.index += 1
                    break
                chars.append(QUOTED_ESCAPES.get(escaped, escaped))
                self.index += 2
            else:
                chars.append(char)
                self.index += 1
        return Err(LexError(LexErrorKind.UNTERMINATED_QUOTE, len(self.text)))


def tokenize(text: str) -> Result[List[Token], LexError]:
    """Lex a whole command line into a list of tokens."""
    lexer = CommandLexer(text)
    tokens = []
    while True:
        res = lexer.next()
        if not res.ok:
            return res
        if res.value is None:
            return Ok(tokens)
        tokens.append(res.value)
