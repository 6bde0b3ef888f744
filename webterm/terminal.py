#!/usr/bin/env python3
"""
Terminal emulator for webterm.

This module provides the command dispatcher and the terminal session built
around it. A line goes through the parser, the dispatcher maps the parsed
command onto Session operations, and pending redirects are written back into
the virtual filesystem before anything is displayed.

Design Principles:
- All filesystem access goes through the Session
- Clean separation between parsing and execution
- An explicit ShellContext is passed to every dispatch; no global state
- Failures are values: every step returns Ok/Err
"""

import argparse
import logging
import os
import socket
import sys
import tempfile
import webbrowser
from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, Dict, List, Optional, Set, Union
from urllib.request import pathname2url

from .bootstrap import build_filesystem, default_fetcher
from .command_parser import Command, CommandParser, Redirect, RedirectType
from .completion import complete
from .errors import BootstrapError, DispatchError
from .fetch import DirectoryFetcher, Fetcher, HttpFetcher
from .results import Err, Ok, Result
from .session import OpenBlob, OpenRequest, OpenUrl, Session

logger = logging.getLogger(__name__)


# Command names and their usage lines, in help order.
USAGE: Dict[str, str] = {
    'pwd': 'pwd',
    'cd': 'cd [PATH]',
    'ls': 'ls [-a|--all] [PATH...]',
    'mkdir': 'mkdir [-p|--parents] DIR...',
    'touch': 'touch FILE...',
    'cat': 'cat FILE...',
    'echo': 'echo [ARGS...]',
    'rm': 'rm [-r|-R|--recursive] TARGET...',
    'xdg-open': 'xdg-open FILE...',
    'wget': 'wget URL...',
    'clear': 'clear',
    'help': 'help',
}

COMMANDS = tuple(USAGE)

Opener = Callable[[OpenRequest], Result[None, str]]


def browser_opener(request: OpenRequest) -> Result[None, str]:
    """Open a file request in the host's web browser."""
    if isinstance(request, OpenUrl):
        target = request.url
    elif isinstance(request, OpenBlob):
        suffix = os.path.splitext(request.filename)[1]
        with tempfile.NamedTemporaryFile(prefix='webterm-', suffix=suffix, delete=False) as f:
            f.write(request.data)
        target = 'file://' + pathname2url(f.name)
    else:
        raise AssertionError(f"unhandled open request: {request!r}")

    if not webbrowser.open(target):
        return Err(f"no browser available to open {target}")
    return Ok(None)


@dataclass
class ShellContext:
    """Everything a dispatch needs: the session and the host capabilities."""
    session: Session
    fetcher: Fetcher = field(default_factory=HttpFetcher)
    opener: Opener = browser_opener


class OutputKind(Enum):
    """What the terminal should do with a command's output."""
    TEXT = 'text'      # display text (possibly empty)
    EMPTY = 'empty'    # blank line entered; nothing ran
    CLEAR = 'clear'    # wipe the scrollback


@dataclass
class CommandOutput:
    """Result of dispatching one command, before or after redirects."""
    text: str = ''
    kind: OutputKind = OutputKind.TEXT
    redirects: List[Redirect] = field(default_factory=list)
    exit_code: int = 0


def _text(text: str) -> Result[CommandOutput, str]:
    return Ok(CommandOutput(text=text))


class CommandExecutor:
    """
    Executes parsed commands against a ShellContext.

    Each verb is a ``_cmd_<verb>`` method taking the positional arguments,
    the set of recognized flag names and the context.
    """

    # Short option letter -> flag name, per command
    FLAG_MAPPINGS: Dict[str, Dict[str, str]] = {
        'ls': {'a': 'all'},
        'mkdir': {'p': 'parents'},
        'rm': {'r': 'recursive', 'R': 'recursive'},
    }

    LONG_FLAGS: Dict[str, Set[str]] = {
        'ls': {'all'},
        'mkdir': {'parents'},
        'rm': {'recursive'},
    }

    def __init__(self):
        self.parser = CommandParser()

    def run(self, command_line: str, context: ShellContext) -> Result[CommandOutput, str]:
        """Parse, execute and apply redirects for one command line."""
        parsed = self.parser.parse(command_line)
        if not parsed.ok:
            return Err(f"syntax error: {parsed.error}")
        command = parsed.value

        res = self.execute(command, context)
        if not res.ok:
            return res
        return self.apply_redirects(command.bin, res.value, context)

    def execute(self, command: Command, context: ShellContext) -> Result[CommandOutput, str]:
        """Execute a single command; redirects are returned, not applied."""
        if command.is_empty():
            return Ok(CommandOutput(kind=OutputKind.EMPTY))

        if command.bin not in USAGE:
            return Err(f"{command.bin}: {DispatchError.COMMAND_NOT_FOUND.value}")

        flags = self._parse_flags(command)
        if not flags.ok:
            return flags

        logger.debug("executing %s", command)
        handler = getattr(self, '_cmd_' + command.bin.replace('-', '_'))
        res = handler(command.arguments, flags.value, context)
        if not res.ok:
            return res

        output = res.value
        output.redirects = list(command.redirects)
        return Ok(output)

    def _parse_flags(self, command: Command) -> Result[Set[str], str]:
        """Map options onto flag names; unknown options are errors."""
        if command.bin == 'echo':
            return Ok(set())

        verb = command.bin
        mapping = self.FLAG_MAPPINGS.get(verb, {})
        flags = set()
        for cluster in command.short_options:
            for char in cluster:
                if char not in mapping:
                    return Err(f"{verb}: {DispatchError.INVALID_OPTION.value} -- '{char}'")
                flags.add(mapping[char])
        for name in command.long_options:
            if name not in self.LONG_FLAGS.get(verb, set()):
                return Err(f"{verb}: {DispatchError.UNRECOGNIZED_OPTION.value} '--{name}'")
            flags.add(name)
        return Ok(flags)

    def apply_redirects(self, verb: str, output: CommandOutput,
                        context: ShellContext) -> Result[CommandOutput, str]:
        """
        Write the output text into each redirect target, in order.

        The first target that cannot be opened fails the whole command and
        later redirects are skipped. Redirected output is not displayed.
        """
        if not output.redirects:
            return Ok(output)

        data = output.text.encode('utf-8')
        for redirect in output.redirects:
            res = context.session.create_or_open_file(redirect.target)
            if not res.ok:
                return Err(f"{verb}: {res.error}")
            file = res.value
            if redirect.type == RedirectType.WRITE:
                file.write(data)
            elif redirect.type == RedirectType.APPEND:
                file.append(data)
            else:
                raise AssertionError(f"unhandled redirect type: {redirect.type}")

        return Ok(CommandOutput(text='', kind=output.kind))

    # Verbs

    def _missing_operand(self, verb: str) -> Result[CommandOutput, str]:
        return Err(f"{verb}: {DispatchError.MISSING_OPERAND.value}")

    def _cmd_pwd(self, args: List[str], flags: Set[str], context: ShellContext):
        if args:
            return Err(f"pwd: {DispatchError.TOO_MANY_ARGUMENTS.value}")
        return _text(context.session.pwd() + '\n')

    def _cmd_cd(self, args: List[str], flags: Set[str], context: ShellContext):
        if len(args) > 1:
            return Err(f"cd: {DispatchError.TOO_MANY_ARGUMENTS.value}")
        res = context.session.cd(args[0] if args else None)
        if not res.ok:
            return Err(f"cd: {res.error}")
        return _text('')

    def _cmd_mkdir(self, args: List[str], flags: Set[str], context: ShellContext):
        if not args:
            return self._missing_operand('mkdir')
        for path in args:
            res = context.session.mkdir(path, 'parents' in flags)
            if not res.ok:
                return Err(f"mkdir: {res.error}")
        return _text('')

    def _cmd_ls(self, args: List[str], flags: Set[str], context: ShellContext):
        session = context.session
        targets: List[Optional[str]] = list(args) or [None]
        files: List[str] = []
        dirs: List[str] = []
        for target in targets:
            res = session.list_files(target)
            if not res.ok:
                return Err(f"ls: {res.error}")
            names = res.value
            is_dir = target is None or session.is_directory(target)
            if 'all' not in flags and is_dir:
                names = [name for name in names if not name.startswith('.')]
            listing = ''.join(name + '\n' for name in names)
            if is_dir:
                dirs.append(f"{target}:\n{listing}" if len(targets) > 1 else listing)
            else:
                files.append(listing)
        # File operands come first without headers, then each directory.
        sections = [''.join(files)] if files else []
        return _text('\n'.join(sections + dirs))

    def _cmd_touch(self, args: List[str], flags: Set[str], context: ShellContext):
        if not args:
            return self._missing_operand('touch')
        for path in args:
            res = context.session.touch(path)
            if not res.ok:
                return Err(f"touch: {res.error}")
        return _text('')

    def _cmd_cat(self, args: List[str], flags: Set[str], context: ShellContext):
        if not args:
            return self._missing_operand('cat')
        contents = []
        for path in args:
            res = context.session.cat(path)
            if not res.ok:
                return Err(f"cat: {res.error}")
            contents.append(res.value)
        return _text(''.join(contents))

    def _cmd_echo(self, args: List[str], flags: Set[str], context: ShellContext):
        return _text(' '.join(args) + '\n')

    def _cmd_rm(self, args: List[str], flags: Set[str], context: ShellContext):
        if not args:
            return self._missing_operand('rm')
        for path in args:
            res = context.session.rm(path, 'recursive' in flags)
            if not res.ok:
                return Err(f"rm: {res.error}")
        return _text('')

    def _cmd_xdg_open(self, args: List[str], flags: Set[str], context: ShellContext):
        if not args:
            return self._missing_operand('xdg-open')
        for path in args:
            res = context.session.xdg_open(path)
            if not res.ok:
                return Err(f"xdg-open: {res.error}")
            opened = context.opener(res.value)
            if not opened.ok:
                return Err(f"xdg-open: {opened.error}")
        return _text('')

    def _cmd_wget(self, args: List[str], flags: Set[str], context: ShellContext):
        if not args:
            return self._missing_operand('wget')
        saved = []
        for url in args:
            fetched = context.fetcher.fetch(url)
            if not fetched.ok:
                return Err(f"wget: {url}: {fetched.error}")
            stored = context.session.store_download(url, fetched.value)
            if not stored.ok:
                return Err(f"wget: {stored.error}")
            saved.append(f"'{stored.value}' saved\n")
        return _text(''.join(saved))

    def _cmd_clear(self, args: List[str], flags: Set[str], context: ShellContext):
        return Ok(CommandOutput(kind=OutputKind.CLEAR))

    def _cmd_help(self, args: List[str], flags: Set[str], context: ShellContext):
        lines = ["Available commands:"]
        lines.extend(f"  {usage}" for usage in USAGE.values())
        lines.append("")
        lines.append("Append '> FILE' or '>> FILE' to write or append output to a file.")
        return _text('\n'.join(lines) + '\n')


@dataclass
class TerminalConfig:
    """Configuration for terminal session."""
    user: str = 'guest'
    hostname: str = field(default_factory=lambda: socket.gethostname().split('.')[0])
    initial_dir: Optional[str] = None  # defaults to the user's home
    prompt_format: str = '{user}@{hostname}:{cwd}$ '
    history_size: int = 1000
    assets_directory: Optional[str] = None  # bootstrap files; packaged assets if unset


class CommandHistory:
    """Bounded command history with up/down navigation."""

    def __init__(self, max_size: int = 1000):
        self.max_size = max_size
        self.entries: List[str] = []
        self.position = 0
        self._draft = ''

    def add(self, command: str):
        """Record a command and reset navigation to the end."""
        if command.strip() and (not self.entries or self.entries[-1] != command):
            self.entries.append(command)
            del self.entries[:-self.max_size]
        self.position = len(self.entries)
        self._draft = ''

    def previous(self, current: str = '') -> Optional[str]:
        """Step back; the line being edited is kept as a draft."""
        if self.position == 0:
            return None
        if self.position == len(self.entries):
            self._draft = current
        self.position -= 1
        return self.entries[self.position]

    def next(self) -> Optional[str]:
        """Step forward, ending on the saved draft."""
        if self.position >= len(self.entries):
            return None
        self.position += 1
        if self.position == len(self.entries):
            return self._draft
        return self.entries[self.position]


# UI actions: what a front end should do in response to a key event.

@dataclass(frozen=True)
class AddHistoryItem:
    prompt: str
    command: str
    output: str


@dataclass(frozen=True)
class SetInputValue:
    value: str


@dataclass(frozen=True)
class ClearHistory:
    pass


@dataclass(frozen=True)
class ClearInput:
    pass


UiAction = Union[AddHistoryItem, SetInputValue, ClearHistory, ClearInput]


@dataclass(frozen=True)
class KeyEvent:
    """A key press together with the input line at that moment."""
    key: str
    input: str = ''
    ctrl: bool = False


class TerminalSession:
    """
    Main terminal session manager.

    This class owns the ShellContext, turns key events into UI actions and
    provides the REPL loop for use from a real terminal.
    """

    def __init__(self, config: Optional[TerminalConfig] = None,
                 session: Optional[Session] = None,
                 fetcher: Optional[Fetcher] = None,
                 opener: Optional[Opener] = None):
        """
        Initialize terminal session.

        Without an explicit session the initial filesystem is bootstrapped;
        a failed bootstrap raises BootstrapError.
        """
        self.config = config or TerminalConfig()
        if session is None:
            session = self._bootstrap()
        self.context = ShellContext(
            session=session,
            fetcher=fetcher or HttpFetcher(),
            opener=opener or browser_opener,
        )
        self.executor = CommandExecutor()
        self.history = CommandHistory(self.config.history_size)
        self.running = False

    def _bootstrap(self) -> Session:
        if self.config.assets_directory:
            assets = DirectoryFetcher(self.config.assets_directory)
        else:
            assets = default_fetcher()
        res = build_filesystem(self.config.user, assets)
        if not res.ok:
            raise BootstrapError(res.error)
        return Session(res.value, self.config.user, self.config.initial_dir)

    @property
    def session(self) -> Session:
        return self.context.session

    def get_prompt(self) -> str:
        """Generate the command prompt."""
        return self.config.prompt_format.format(
            user=self.session.username,
            hostname=self.config.hostname,
            cwd=self.session.formatted_cwd(),
        )

    def execute_command(self, command_line: str) -> CommandOutput:
        """Run a command line; errors come back as output with exit code 1."""
        res = self.executor.run(command_line, self.context)
        if not res.ok:
            logger.debug("command failed: %s", res.error)
            return CommandOutput(text=res.error, exit_code=1)
        return res.value

    def handle_key(self, event: KeyEvent) -> List[UiAction]:
        """Translate a key press into UI actions."""
        if event.ctrl:
            if event.key.lower() == 'l':
                return [ClearHistory()]
            if event.key.lower() == 'c':
                return [AddHistoryItem(self.get_prompt(), event.input + '^C', ''), ClearInput()]
            return []

        if event.key == 'Enter':
            prompt = self.get_prompt()
            self.history.add(event.input)
            output = self.execute_command(event.input)
            if output.kind == OutputKind.CLEAR:
                return [ClearHistory(), ClearInput()]
            return [AddHistoryItem(prompt, event.input, output.text), ClearInput()]

        if event.key == 'Tab':
            completion = complete(self.session, event.input, COMMANDS)
            actions: List[UiAction] = []
            if len(completion.candidates) > 1:
                actions.append(AddHistoryItem(
                    self.get_prompt(), event.input, '\n'.join(completion.candidates)))
            actions.append(SetInputValue(completion.value))
            return actions

        if event.key == 'ArrowUp':
            previous = self.history.previous(event.input)
            return [SetInputValue(previous)] if previous is not None else []

        if event.key == 'ArrowDown':
            following = self.history.next()
            return [SetInputValue(following)] if following is not None else []

        return []

    def run_interactive(self):
        """Run the interactive REPL loop."""
        self.running = True

        motd = self.session.cat('~/motd.txt')
        if motd.ok:
            print(motd.value)

        while self.running:
            try:
                command_line = input(self.get_prompt())
            except KeyboardInterrupt:
                print("^C")
                continue
            except EOFError:
                print()
                break

            if command_line.strip() in ('exit', 'quit'):
                break

            self.history.add(command_line)
            output = self.execute_command(command_line)
            if output.kind == OutputKind.CLEAR:
                print('\033[2J\033[H', end='')
            elif output.text:
                print(output.text.rstrip('\n'))

        self.running = False

    def run_command(self, command_line: str) -> str:
        """
        Run a single command and return output.

        This method is useful for non-interactive use.
        """
        return self.execute_command(command_line).text

    def run_script(self, script_lines: List[str]) -> List[str]:
        """
        Run a script (list of command lines) and return outputs.
        """
        outputs = []
        for line in script_lines:
            # Skip comments and empty lines
            line = line.strip()
            if not line or line.startswith('#'):
                continue
            outputs.append(self.run_command(line))
        return outputs


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point for terminal emulator."""
    parser = argparse.ArgumentParser(description='webterm - a shell over an in-memory filesystem')
    parser.add_argument('-c', '--command', help='Execute command and exit')
    parser.add_argument('-u', '--user', help='Set username', default='guest')
    parser.add_argument('-d', '--directory', help='Set initial directory')
    parser.add_argument('--assets', help='Directory holding the bootstrap files')
    parser.add_argument('-v', '--verbose', action='store_true', help='Enable debug logging')
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format='%(name)s: %(message)s',
    )

    config = TerminalConfig(
        user=args.user,
        initial_dir=args.directory,
        assets_directory=args.assets,
    )
    try:
        session = TerminalSession(config=config)
    except BootstrapError as e:
        print(f"webterm: {e}", file=sys.stderr)
        return 1

    if args.command:
        output = session.execute_command(args.command)
        if output.text:
            print(output.text.rstrip('\n'))
        return output.exit_code

    session.run_interactive()
    return 0


if __name__ == '__main__':
    sys.exit(main())
