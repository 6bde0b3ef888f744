"""
Initial filesystem for a new terminal.

The tree is declared statically; file entries name assets that are
hydrated through a fetcher and stored as static content, so ``xdg-open``
can point back at the original resource.
"""

import logging
import os
from typing import Dict, List, Mapping, Optional, Union

from .fetch import DirectoryFetcher, Fetcher
from .filesystem import FileSystem, StaticContent
from .results import Err, Ok, Result

logger = logging.getLogger(__name__)

ASSETS_DIR = os.path.join(os.path.dirname(os.path.abspath(__file__)), 'assets')

MOTD = 'motd.txt'


class Asset(str):
    """Marks a tree entry as a file to fetch by this name."""


InitialTree = Mapping[str, Union['InitialTree', Asset]]


def initial_tree(username: str) -> InitialTree:
    """The static tree every session starts from."""
    return {
        'home': {
            username: {
                MOTD: Asset(MOTD),
            },
        },
    }


def default_fetcher() -> Fetcher:
    """Fetcher reading the assets shipped with the package."""
    return DirectoryFetcher(ASSETS_DIR)


def _hydrate(tree: InitialTree, fetcher: Fetcher, failures: List[str]) -> Dict:
    hydrated = {}
    for name, entry in tree.items():
        if isinstance(entry, Asset):
            res = fetcher.fetch(entry)
            if not res.ok:
                failures.append(res.error)
                continue
            hydrated[name] = StaticContent(res.value, fetcher.source_url(entry))
        else:
            hydrated[name] = _hydrate(entry, fetcher, failures)
    return hydrated


def build_filesystem(username: str, fetcher: Fetcher,
                     tree: Optional[InitialTree] = None) -> Result[FileSystem, str]:
    """
    Fetch every asset and build the initial filesystem.

    Nothing is built unless all fetches succeed.
    """
    failures: List[str] = []
    hydrated = _hydrate(tree if tree is not None else initial_tree(username), fetcher, failures)
    if failures:
        logger.warning("bootstrap failed: %s", '; '.join(failures))
        return Err('; '.join(failures))
    return Ok(FileSystem.from_tree(hydrated))
