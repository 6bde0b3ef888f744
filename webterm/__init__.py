"""
webterm - A POSIX-flavored command line over an in-memory virtual filesystem

This package provides a command lexer and parser, a virtual filesystem
addressed by stable node handles, a per-user Session exposing path-resolving
operations, and a terminal session that dispatches parsed commands onto it.
"""

__version__ = "0.1.0"

from .results import Ok, Err, Result

from .errors import (
    LexError,
    LexErrorKind,
    ParseError,
    FsError,
    FsFailure,
    DispatchError,
    BootstrapError,
)

from .lexer import (
    CommandLexer,
    Token,
    TokenKind,
    tokenize,
)

from .command_parser import (
    Command,
    CommandParser,
    Redirect,
    RedirectType,
)

from .filesystem import (
    FileSystem,
    Node,
    DirNode,
    RootNode,
    FileNode,
    DynamicContent,
    StaticContent,
)

from .session import (
    Session,
    OpenBlob,
    OpenUrl,
)

from .fetch import (
    Fetcher,
    HttpFetcher,
    DirectoryFetcher,
)

from .completion import Completion, complete

from .terminal import (
    TerminalSession,
    TerminalConfig,
    CommandExecutor,
    CommandHistory,
    CommandOutput,
    OutputKind,
    ShellContext,
    KeyEvent,
)

__all__ = [
    # Results and errors
    "Ok",
    "Err",
    "Result",
    "LexError",
    "LexErrorKind",
    "ParseError",
    "FsError",
    "FsFailure",
    "DispatchError",
    "BootstrapError",

    # Lexer and parser
    "CommandLexer",
    "Token",
    "TokenKind",
    "tokenize",
    "Command",
    "CommandParser",
    "Redirect",
    "RedirectType",

    # Filesystem
    "FileSystem",
    "Node",
    "DirNode",
    "RootNode",
    "FileNode",
    "DynamicContent",
    "StaticContent",
    "Session",
    "OpenBlob",
    "OpenUrl",

    # Host capabilities
    "Fetcher",
    "HttpFetcher",
    "DirectoryFetcher",

    # Terminal
    "Completion",
    "complete",
    "TerminalSession",
    "TerminalConfig",
    "CommandExecutor",
    "CommandHistory",
    "CommandOutput",
    "OutputKind",
    "ShellContext",
    "KeyEvent",

    # Version info
    "__version__",
]
