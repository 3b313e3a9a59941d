#!/usr/bin/env python3
"""Loading of rule function source files.

This module fills the shared RuleFileCache:
- load(): cache hit returns immediately, a miss reads and stores the file
- preload(): always re-reads, used at startup and when the user edits a path
- load_in_background(): fire-and-forget load whose errors are only logged

Failed reads raise LoadError and leave the cache untouched, so the next
evaluation pass tries again.

Example:
    >>> loader = RuleFileLoader(RuleFileCache(), FileSystemReader("/vault"))
    >>> loader.preload("rules/status.py")
"""

import threading
from pathlib import Path
from typing import Callable, Optional, Union

from fmdecorator.core.constants import ErrorCode, RuleFilePath, SourceText
from fmdecorator.infrastructure.cache_manager import RuleFileCache
from fmdecorator.infrastructure.logger import Logger, get_logger

Reader = Callable[[RuleFilePath], SourceText]
Job = Callable[[], None]
Scheduler = Callable[[Job], None]


class LoadError(Exception):
    """A rule file could not be read."""

    def __init__(self, file_path: str, cause: Optional[BaseException] = None):
        self.file_path = file_path
        self.cause = cause
        self.error_code = _error_code_for(cause)
        self.message = f"Failed to load rule file: {file_path}"
        if cause is not None:
            self.message = f"{self.message} ({cause})"
        super().__init__(self.message)

    @property
    def detail(self) -> str:
        """Underlying error text, as shown to users."""
        return str(self.cause) if self.cause is not None else self.message


def _error_code_for(cause: Optional[BaseException]) -> ErrorCode:
    if isinstance(cause, FileNotFoundError):
        return ErrorCode.NOT_FOUND
    if isinstance(cause, PermissionError):
        return ErrorCode.PERMISSION_DENIED
    return ErrorCode.INTERNAL_ERROR


class FileSystemReader:
    """Reads rule files relative to a vault root directory."""

    def __init__(self, root: Union[str, Path] = ".", encoding: str = "utf-8"):
        self.root = Path(root).expanduser()
        self.encoding = encoding

    def __call__(self, file_path: RuleFilePath) -> SourceText:
        """Read a rule file.

        Raises:
            FileNotFoundError: If the file doesn't exist
            OSError: If the file can't be read
        """
        with open(self.root / file_path, "r", encoding=self.encoding) as f:
            return f.read()


def run_in_thread(job: Job) -> None:
    """Default scheduler: run the job on a daemon thread."""
    thread = threading.Thread(target=job, name="fmdecorator-load", daemon=True)
    thread.start()


class RuleFileLoader:
    """Reads rule files into the shared cache."""

    def __init__(
        self,
        cache: RuleFileCache,
        reader: Reader,
        scheduler: Optional[Scheduler] = None,
        logger: Optional[Logger] = None,
    ):
        """Initialize loader.

        Args:
            cache: Shared cache to fill
            reader: Callable returning the text of a rule file
            scheduler: Runs background load jobs (daemon thread if None)
            logger: Logger instance (global logger if None)
        """
        self.cache = cache
        self._reader = reader
        self._scheduler = scheduler or run_in_thread
        self._logger = logger or get_logger()

    def _read(self, file_path: RuleFilePath) -> SourceText:
        try:
            return self._reader(file_path)
        except Exception as e:
            raise LoadError(file_path, e) from e

    def load(self, file_path: RuleFilePath) -> SourceText:
        """Get a rule file's source, reading it on a cache miss.

        Args:
            file_path: Path exactly as configured

        Returns:
            Source text

        Raises:
            LoadError: If the file is not cached and cannot be read
        """
        cached = self.cache.get(file_path)
        if cached is not None:
            return cached

        source = self._read(file_path)
        self.cache.set(file_path, source)
        self._logger.debug("Rule file cached", file_path=file_path, size=len(source))
        return source

    def preload(self, file_path: RuleFilePath) -> SourceText:
        """Read a rule file and replace its cache entry.

        Args:
            file_path: Path exactly as configured

        Returns:
            Source text

        Raises:
            LoadError: If the file cannot be read (existing entry is kept)
        """
        source = self._read(file_path)
        self.cache.set(file_path, source)
        self._logger.debug("Rule file preloaded", file_path=file_path, size=len(source))
        return source

    def load_in_background(self, file_path: RuleFilePath) -> None:
        """Schedule a load whose failure is logged, never raised."""

        def job() -> None:
            try:
                self.load(file_path)
            except LoadError as e:
                self._logger.error(
                    "Background load failed", file_path=file_path, error=e.detail
                )

        self._scheduler(job)
