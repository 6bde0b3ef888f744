"""
Byte-fetch capabilities.

The terminal never talks to the network or the host disk directly; it is
handed a fetcher. ``HttpFetcher`` backs ``wget``, ``DirectoryFetcher``
hydrates bootstrap files from a host directory.
"""

import http.client
import logging
import os
import urllib.error
import urllib.request
from abc import ABC, abstractmethod
from typing import Optional
from urllib.parse import urlsplit

from .results import Err, Ok, Result

logger = logging.getLogger(__name__)


class Fetcher(ABC):
    """Interface: turn a URL or path into bytes."""

    @abstractmethod
    def fetch(self, path: str) -> Result[bytes, str]:
        """Bytes at ``path``, or an error message."""
        pass

    def source_url(self, path: str) -> str:
        """The URL a fetched file should remember as its origin."""
        return path


class HttpFetcher(Fetcher):
    """Fetch over HTTP(S) with urllib."""

    SCHEMES = ('http', 'https')

    def __init__(self, timeout: float = 10.0, user_agent: str = 'webterm-wget'):
        self.timeout = timeout
        self.user_agent = user_agent

    def fetch(self, path: str) -> Result[bytes, str]:
        scheme = urlsplit(path).scheme.lower()
        if scheme not in self.SCHEMES:
            return Err(f"unsupported URL scheme '{scheme}'" if scheme else "missing URL scheme")
        try:
            request = urllib.request.Request(path, headers={'User-Agent': self.user_agent})
            with urllib.request.urlopen(request, timeout=self.timeout) as response:
                return Ok(response.read())
        except urllib.error.HTTPError as e:
            logger.warning("fetch %s failed: HTTP %s", path, e.code)
            return Err(f"HTTP error {e.code}")
        except urllib.error.URLError as e:
            logger.warning("fetch %s failed: %s", path, e.reason)
            return Err(f"unable to fetch: {e.reason}")
        except http.client.HTTPException as e:
            # InvalidURL, IncompleteRead, BadStatusLine...
            logger.warning("fetch %s failed: %s", path, e)
            return Err(f"unable to fetch: {e}")
        except ValueError as e:
            return Err(str(e))
        except OSError as e:
            logger.warning("fetch %s failed: %s", path, e)
            return Err(str(e))


class DirectoryFetcher(Fetcher):
    """Read files from a host directory; paths may not escape it."""

    def __init__(self, root: str, base_url: Optional[str] = None):
        self.root = os.path.abspath(root)
        self.base_url = base_url

    def _resolve_host_path(self, path: str) -> Optional[str]:
        resolved = os.path.abspath(os.path.join(self.root, path.lstrip('/')))
        if resolved != self.root and not resolved.startswith(self.root + os.sep):
            return None
        return resolved

    def fetch(self, path: str) -> Result[bytes, str]:
        host_path = self._resolve_host_path(path)
        if host_path is None:
            return Err(f"{path}: outside of {self.root}")
        try:
            with open(host_path, 'rb') as f:
                return Ok(f.read())
        except OSError as e:
            logger.warning("reading %s failed: %s", host_path, e)
            return Err(f"{path}: {e.strerror or e}")

    def source_url(self, path: str) -> str:
        if self.base_url:
            return self.base_url.rstrip('/') + '/' + path.lstrip('/')
        host_path = self._resolve_host_path(path) or path
        return 'file://' + urllib.request.pathname2url(host_path)
