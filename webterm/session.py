"""
Session - a per-user cursor over the virtual filesystem.

A Session holds the current working directory and the username that
locates the home directory. Every path argument may be absolute (``/a/b``),
home-relative (``~``, ``~/a``) or relative to the cwd. ``.`` and ``..`` are
normalized lexically before the tree is walked, so ``a/..`` works even when
``a`` does not exist, but every named segment that survives normalization
must exist and be a directory.

All operations return ``Ok``/``Err``; mutating operations validate the whole
path first and then commit a single insert or delete.
"""

import logging
import posixpath
from dataclasses import dataclass
from typing import List, Optional, Tuple, Union
from urllib.parse import unquote, urlsplit

from .errors import BootstrapError, FsError, FsFailure
from .filesystem import DynamicContent, FileContent, FileNode, FileSystem, StaticContent
from .results import Err, Ok, Result

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class OpenBlob:
    """Ask the host to open in-memory bytes under a filename."""
    filename: str
    data: bytes


@dataclass(frozen=True)
class OpenUrl:
    """Ask the host to open the resource a static file was fetched from."""
    url: str


OpenRequest = Union[OpenBlob, OpenUrl]


def download_name(url: str) -> str:
    """File name a download of ``url`` is stored under."""
    name = posixpath.basename(unquote(urlsplit(url).path))
    # ".." and "." would be normalized away by path resolution
    if name in ('', '.', '..'):
        return 'index.html'
    return name


class Session:
    """
    Per-user cursor plus operations over a FileSystem.

    Raises BootstrapError if ``/home/<username>`` is missing; that is the
    only failure reported by exception.
    """

    def __init__(self, fs: FileSystem, username: str, initial_dir: Optional[str] = None):
        self.fs = fs
        self.username = username

        home = self._walk(['home', username])
        if not home.ok or not fs.node(home.value).is_dir():
            raise BootstrapError(f"/home/{username} must exist before a session is created")
        self.home = home.value
        self.cwd = self.home

        if initial_dir is not None:
            res = self.cd(initial_dir)
            if not res.ok:
                raise BootstrapError(f"initial directory {res.error}")

    # Path resolution

    def _segments(self, path: str) -> List[str]:
        """Absolute, normalized segment list for ``path``."""
        if path.startswith('/'):
            segments: List[str] = []
        elif path == '~' or path.startswith('~/'):
            segments = self.fs.path_segments(self.home)
            path = path[1:]
        else:
            segments = self.fs.path_segments(self.cwd)

        for part in path.split('/'):
            if part == '' or part == '.':
                continue
            elif part == '..':
                if segments:
                    segments.pop()
            else:
                segments.append(part)
        return segments

    def _walk(self, segments: List[str]) -> Result[int, FsError]:
        handle = FileSystem.ROOT
        for name in segments:
            if not self.fs.node(handle).is_dir():
                return Err(FsError.NOT_A_DIRECTORY)
            child = self.fs.child(handle, name)
            if child is None:
                return Err(FsError.NO_SUCH_FILE_OR_DIRECTORY)
            handle = child
        return Ok(handle)

    def _resolve(self, path: str) -> Result[int, FsError]:
        if path == '':
            return Err(FsError.NO_SUCH_FILE_OR_DIRECTORY)
        return self._walk(self._segments(path))

    def _resolve_parent(self, segments: List[str]) -> Result[Tuple[int, str], FsError]:
        """Container handle and final name; ``segments`` must be non-empty."""
        parent = self._walk(segments[:-1])
        if not parent.ok:
            return parent
        if not self.fs.node(parent.value).is_dir():
            return Err(FsError.NOT_A_DIRECTORY)
        return Ok((parent.value, segments[-1]))

    def _protected(self) -> Tuple[int, ...]:
        return (FileSystem.ROOT, self.fs.node(self.home).parent, self.home)

    # Operations

    def cd(self, path: Optional[str] = None) -> Result[None, FsFailure]:
        """Change the current directory; no path means home."""
        if path is None:
            self.cwd = self.home
            return Ok(None)

        res = self._resolve(path)
        if not res.ok:
            return Err(FsFailure(res.error, path))
        if not self.fs.node(res.value).is_dir():
            return Err(FsFailure(FsError.NOT_A_DIRECTORY, path))

        self.cwd = res.value
        logger.debug("cwd is now %s", self.pwd())
        return Ok(None)

    def mkdir(self, path: str, make_parents: bool = False) -> Result[None, FsFailure]:
        """Create a directory, optionally with its missing parents."""
        action = 'cannot create directory'
        if path == '':
            return Err(FsFailure(FsError.NO_SUCH_FILE_OR_DIRECTORY, path, action))
        segments = self._segments(path)
        if not segments:
            if make_parents:
                return Ok(None)
            return Err(FsFailure(FsError.FILE_EXISTS, path, action))

        if not make_parents:
            res = self._resolve_parent(segments)
            if not res.ok:
                return Err(FsFailure(res.error, path, action))
            parent, name = res.value
            if self.fs.child(parent, name) is not None:
                return Err(FsFailure(FsError.FILE_EXISTS, path, action))
            self.fs.add_dir(parent, name)
            return Ok(None)

        # Find the first missing segment, checking everything before it.
        handle = FileSystem.ROOT
        missing = len(segments)
        for i, name in enumerate(segments):
            child = self.fs.child(handle, name)
            if child is None:
                missing = i
                break
            if not self.fs.node(child).is_dir():
                kind = FsError.FILE_EXISTS if i == len(segments) - 1 else FsError.NOT_A_DIRECTORY
                return Err(FsFailure(kind, path, action))
            handle = child

        for name in segments[missing:]:
            handle = self.fs.add_dir(handle, name)
        return Ok(None)

    def touch(self, path: str) -> Result[None, FsFailure]:
        """Create an empty file unless something already exists there."""
        action = 'cannot touch'
        if path == '':
            return Err(FsFailure(FsError.NO_SUCH_FILE_OR_DIRECTORY, path, action))
        segments = self._segments(path)
        if not segments:
            return Ok(None)

        res = self._resolve_parent(segments)
        if not res.ok:
            return Err(FsFailure(res.error, path, action))
        parent, name = res.value
        if self.fs.child(parent, name) is None:
            self.fs.add_file(parent, name)
        return Ok(None)

    def cat(self, path: str) -> Result[str, FsFailure]:
        """Decoded text of a file."""
        res = self._resolve(path)
        if not res.ok:
            return Err(FsFailure(res.error, path))
        node = self.fs.node(res.value)
        if node.is_dir():
            return Err(FsFailure(FsError.IS_A_DIRECTORY, path))
        return Ok(node.read().decode('utf-8', errors='replace'))

    def create_or_open_file(self, path: str,
                            content: Optional[FileContent] = None) -> Result[FileNode, FsFailure]:
        """
        Return the file at ``path``, creating it if absent.

        Missing parent directories are an error; nothing is created for
        them. A new file starts with ``content`` (empty dynamic bytes by
        default); an existing file is returned untouched.
        """
        if path == '':
            return Err(FsFailure(FsError.NO_SUCH_FILE_OR_DIRECTORY, path))
        segments = self._segments(path)
        if not segments:
            return Err(FsFailure(FsError.IS_A_DIRECTORY, path))

        res = self._resolve_parent(segments)
        if not res.ok:
            return Err(FsFailure(res.error, path))
        parent, name = res.value

        existing = self.fs.child(parent, name)
        if existing is not None:
            node = self.fs.node(existing)
            if node.is_dir():
                return Err(FsFailure(FsError.IS_A_DIRECTORY, path))
            return Ok(node)

        handle = self.fs.add_file(parent, name, content or DynamicContent())
        return Ok(self.fs.node(handle))

    def rm(self, path: str, recursive: bool = False) -> Result[None, FsFailure]:
        """
        Remove a file, or a directory tree when ``recursive``.

        Root, /home and the session's own home are always refused. Every
        other protected location lies inside one of those, so refusing the
        exact target covers protected paths nested in a removed subtree.
        """
        action = 'cannot remove'
        res = self._resolve(path)
        if not res.ok:
            return Err(FsFailure(res.error, path, action))
        handle = res.value

        if handle in self._protected():
            return Err(FsFailure(FsError.OPERATION_REFUSED, path, action))
        node = self.fs.node(handle)
        if node.is_dir() and not recursive:
            return Err(FsFailure(FsError.IS_A_DIRECTORY, path, action))

        if self.fs.is_ancestor(handle, self.cwd):
            self.cwd = node.parent
        removed = self.fs.remove(handle)
        logger.debug("removed %s (%d nodes)", path, removed)
        return Ok(None)

    def list_files(self, path: Optional[str] = None) -> Result[List[str], FsFailure]:
        """
        Sorted names in a directory, directories suffixed with ``/``.

        A path naming a file lists just that path.
        """
        if path is None:
            handle = self.cwd
        else:
            res = self._resolve(path)
            if not res.ok:
                return Err(FsFailure(res.error, path, 'cannot access'))
            handle = res.value
            if self.fs.node(handle).is_file():
                return Ok([path])

        names = []
        for name, child in sorted(self.fs.children(handle).items()):
            names.append(name + '/' if self.fs.node(child).is_dir() else name)
        return Ok(names)

    def pwd(self) -> str:
        return self.fs.path(self.cwd)

    def formatted_cwd(self) -> str:
        """The cwd with a leading /home/<username> shown as ``~``."""
        cwd = self.pwd()
        home = f"/home/{self.username}"
        if cwd == home:
            return '~'
        if cwd.startswith(home + '/'):
            return '~' + cwd[len(home):]
        return cwd

    def dir_or_file_exists(self, path: str) -> bool:
        return self._resolve(path).ok

    def is_directory(self, path: str) -> bool:
        res = self._resolve(path)
        return res.ok and self.fs.node(res.value).is_dir()

    def xdg_open(self, path: str) -> Result[OpenRequest, FsFailure]:
        """Describe how the host should open a file."""
        res = self._resolve(path)
        if not res.ok:
            return Err(FsFailure(res.error, path))
        node = self.fs.node(res.value)
        if node.is_dir():
            return Err(FsFailure(FsError.IS_A_DIRECTORY, path))

        content = node.content
        if isinstance(content, StaticContent):
            return Ok(OpenUrl(content.url))
        elif isinstance(content, DynamicContent):
            return Ok(OpenBlob(node.name, content.data))
        raise AssertionError(f"unhandled content type: {type(content).__name__}")

    def store_download(self, url: str, data: bytes) -> Result[str, FsFailure]:
        """
        Save fetched bytes in the cwd as static content.

        Tries ``name``, ``name.1``, ``name.2``... and never overwrites an
        existing entry. Returns the name used.
        """
        name = download_name(url)
        candidate = name
        n = 1
        while self.fs.child(self.cwd, candidate) is not None:
            candidate = f"{name}.{n}"
            n += 1
        self.fs.add_file(self.cwd, candidate, StaticContent(data, url))
        logger.debug("stored %s as %s", url, candidate)
        return Ok(candidate)
