"""
Tab completion for the terminal input line.

The first word completes against command names; any later word completes
as a path through ``Session.list_files``.
"""

import os
from dataclasses import dataclass, field
from typing import Iterable, List

from .session import Session


@dataclass
class Completion:
    """New input value plus every candidate that matched."""
    value: str
    candidates: List[str] = field(default_factory=list)


def _complete_command(prefix: str, commands: Iterable[str]) -> List[str]:
    return sorted(cmd for cmd in commands if cmd.startswith(prefix))


def _complete_path(session: Session, word: str) -> List[str]:
    """Paths in the virtual filesystem starting with ``word``."""
    dir_part, slash, prefix = word.rpartition('/')
    if slash:
        directory = dir_part or '/'
        if not session.is_directory(directory):
            return []
        names = session.list_files(directory).value
    else:
        names = session.list_files().value

    head = word[:len(word) - len(prefix)]
    return [head + name for name in names
            if name.startswith(prefix) and (prefix.startswith('.') or not name.startswith('.'))]


def complete(session: Session, text: str, commands: Iterable[str]) -> Completion:
    """
    Complete the last word of ``text``.

    A single match replaces the word (files and commands get a trailing
    space, directories keep their ``/``); several matches extend it to
    their longest common prefix.
    """
    head, sep, word = text.rpartition(' ')
    if head.strip():
        matches = _complete_path(session, word)
    else:
        matches = _complete_command(word, commands)

    lead = head + sep
    if not matches:
        return Completion(text, [])
    if len(matches) == 1:
        match = matches[0]
        suffix = '' if match.endswith('/') else ' '
        return Completion(lead + match + suffix, [match])
    return Completion(lead + os.path.commonprefix(matches), matches)
