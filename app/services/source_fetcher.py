"""
Source Fetcher
Materializes a repository reference into a local file tree, lists the source
files worth reviewing and cleans up afterwards.
"""

import logging
import os
import shutil
import subprocess
import tempfile
from abc import ABC, abstractmethod
from contextlib import contextmanager
from pathlib import Path
from typing import Iterable, Iterator

from app.core.config import settings

logger = logging.getLogger(__name__)


class SourceFetchError(Exception):
    pass


class SourceFetcher(ABC):
    """Capability interface the review workflow depends on."""

    @abstractmethod
    def fetch(self, reference: str) -> Path:
        """Materialize ``reference`` locally and return a handle to it."""

    @abstractmethod
    def list_files(self, handle: Path) -> list[str]:
        """Relative paths of the source files under ``handle``."""

    @abstractmethod
    def read_file(self, handle: Path, relative_path: str) -> str:
        """Content of one listed file."""

    @abstractmethod
    def release(self, handle: Path) -> None:
        """Reclaim whatever ``fetch`` created."""

    @contextmanager
    def checkout(self, reference: str) -> Iterator[Path]:
        """
        fetch() + release() as a scope: the handle is released exactly once,
        also when the body raises.
        """
        handle = self.fetch(reference)
        try:
            yield handle
        finally:
            try:
                self.release(handle)
            except Exception as e:
                logger.warning(f"Failed to release {handle}: {e}")


def walk_source_files(
    root: Path,
    extension: str,
    excluded_dirs: Iterable[str],
) -> list[str]:
    """
    Sorted POSIX paths (relative to ``root``) of files ending in
    ``extension``. Excluded directories are pruned with their subtrees.
    """
    excluded = set(excluded_dirs)
    found = []
    for dirpath, dirnames, filenames in os.walk(root):
        dirnames[:] = [d for d in dirnames if d not in excluded]
        for name in filenames:
            if name.endswith(extension):
                found.append((Path(dirpath) / name).relative_to(root).as_posix())
    return sorted(found)


class GitSourceFetcher(SourceFetcher):
    """Shallow-clones repositories with the ``git`` CLI."""

    def __init__(
        self,
        *,
        root: str | Path | None = None,
        extension: str | None = None,
        excluded_dirs: Iterable[str] | None = None,
        timeout: float | None = None,
    ):
        root = root or settings.SOURCE_FETCH_ROOT or Path(tempfile.gettempdir()) / "code-mentor"
        self.root = Path(root)
        self.root.mkdir(parents=True, exist_ok=True)
        self.extension = extension or settings.SOURCE_FILE_EXTENSION
        self.excluded_dirs = tuple(
            excluded_dirs if excluded_dirs is not None else settings.SOURCE_EXCLUDED_DIRS
        )
        self.timeout = timeout if timeout is not None else settings.SOURCE_FETCH_TIMEOUT_SECONDS

    @staticmethod
    def repo_name(reference: str) -> str:
        name = reference.rstrip("/").removesuffix(".git").rsplit("/", 1)[-1]
        return name or "repo"

    def fetch(self, reference: str) -> Path:
        # a fresh directory per attempt, never a reused clone
        target = Path(tempfile.mkdtemp(prefix=f"{self.repo_name(reference)}-", dir=self.root))

        logger.info(f"Cloning repository {reference} into {target}")
        try:
            result = subprocess.run(
                ["git", "clone", "--quiet", "--depth", "1", reference, str(target)],
                capture_output=True,
                text=True,
                timeout=self.timeout,
                env={**os.environ, "GIT_TERMINAL_PROMPT": "0"},
            )
        except subprocess.TimeoutExpired as e:
            shutil.rmtree(target, ignore_errors=True)
            raise SourceFetchError(f"git clone timed out after {self.timeout}s") from e
        except OSError as e:
            shutil.rmtree(target, ignore_errors=True)
            raise SourceFetchError(f"failed to run git: {e}") from e

        if result.returncode != 0:
            shutil.rmtree(target, ignore_errors=True)
            error_msg = result.stderr.strip() if result.stderr else "unknown error"
            raise SourceFetchError(f"failed to clone repository: {error_msg}")

        logger.info(f"Repository cloned to {target}")
        return target

    def list_files(self, handle: Path) -> list[str]:
        files = walk_source_files(handle, self.extension, self.excluded_dirs)
        logger.info(f"Found {len(files)} '{self.extension}' files in {handle}")
        return files

    def read_file(self, handle: Path, relative_path: str) -> str:
        try:
            return (handle / relative_path).read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as e:
            raise SourceFetchError(f"failed to read {relative_path}: {e}") from e

    def release(self, handle: Path) -> None:
        logger.info(f"Cleaning up {handle}")
        shutil.rmtree(handle, ignore_errors=True)
