"""
Command parser for the webterm terminal.

This module translates a command line into a structured Command value that
the dispatcher can execute. It only parses; it never touches the filesystem.

Grammar:
    line     := [ bin item* ]
    bin      := ARGUMENT
    item     := ARGUMENT | SHORT_OPTION | LONG_OPTION | redirect
    redirect := ('>' | '>>') ARGUMENT
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional, Union

from .errors import LexError, ParseError
from .lexer import CommandLexer, Token, TokenKind
from .results import Err, Ok, Result


class RedirectType(Enum):
    """Types of output redirection."""
    WRITE = '>'      # Overwrite file
    APPEND = '>>'    # Append to file


@dataclass
class Redirect:
    """Represents an output redirection."""
    type: RedirectType
    target: str


@dataclass
class Command:
    """
    A single parsed command.

    An empty ``bin`` means the line held no tokens at all; callers treat
    that as a no-op rather than an unknown command.
    """
    bin: str = ''
    short_options: List[str] = field(default_factory=list)
    long_options: List[str] = field(default_factory=list)
    arguments: List[str] = field(default_factory=list)
    redirects: List[Redirect] = field(default_factory=list)

    def is_empty(self) -> bool:
        return self.bin == ''

    def __str__(self) -> str:
        parts = [self.bin]
        parts.extend(f"--{opt}" for opt in self.long_options)
        parts.extend(f"-{opt}" for opt in self.short_options)
        parts.extend(self.arguments)
        for redirect in self.redirects:
            parts.append(f"{redirect.type.value} {redirect.target}")
        return ' '.join(parts)


ParserError = Union[LexError, ParseError]


class CommandParser:
    """
    Parser for webterm command syntax.

    This parser handles:
    - The binary name (first argument token)
    - Short (-a) and long (--all) options, kept in encounter order
    - Positional arguments, bare or quoted
    - Output redirections (>, >>), each followed by its target
    """

    def parse(self, command_line: str) -> Result[Command, ParserError]:
        """
        Parse a complete command line into a Command.

        This is the main entry point for parsing shell commands.
        """
        return self.parse_tokens(CommandLexer(command_line))

    def parse_tokens(self, lexer: CommandLexer) -> Result[Command, ParserError]:
        """Fold the lexer's token stream into a Command."""
        cmd = Command()

        first = lexer.next()
        if not first.ok:
            return first
        if first.value is None:
            return Ok(cmd)
        if first.value.kind != TokenKind.ARGUMENT:
            return Err(self._unexpected(first.value, lexer))
        cmd.bin = first.value.value

        while True:
            res = lexer.next()
            if not res.ok:
                return res
            token = res.value
            if token is None:
                return Ok(cmd)

            if token.kind == TokenKind.LONG_OPTION:
                cmd.long_options.append(token.value)
            elif token.kind == TokenKind.SHORT_OPTION:
                cmd.short_options.append(token.value)
            elif token.kind == TokenKind.ARGUMENT:
                cmd.arguments.append(token.value)
            elif token.kind in (TokenKind.REDIRECT_WRITE, TokenKind.REDIRECT_APPEND):
                target = self._redirect_target(lexer)
                if not target.ok:
                    return target
                redirect_type = (RedirectType.WRITE if token.kind == TokenKind.REDIRECT_WRITE
                                 else RedirectType.APPEND)
                cmd.redirects.append(Redirect(type=redirect_type, target=target.value))
            else:
                raise AssertionError(f"unhandled token kind: {token.kind}")

    def _redirect_target(self, lexer: CommandLexer) -> Result[str, ParserError]:
        """Consume exactly one argument token as a redirect target."""
        res = lexer.next()
        if not res.ok:
            return res
        token: Optional[Token] = res.value
        if token is None:
            return Err(ParseError(
                f"expected redirect target at {lexer.position}, got end of input",
                lexer.position,
            ))
        if token.kind != TokenKind.ARGUMENT:
            return Err(self._unexpected(token, lexer))
        return Ok(token.value)

    def _unexpected(self, token: Token, lexer: CommandLexer) -> ParseError:
        return ParseError(
            f"expected argument at {token.offset}, got '{token.kind.value}'",
            lexer.position,
        )
