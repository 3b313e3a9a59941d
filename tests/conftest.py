"""Shared pytest fixtures for fmdecorator tests."""
import logging
from pathlib import Path
from typing import Any, Callable, Dict, List

import pytest

from fmdecorator.infrastructure.cache_manager import RuleFileCache
from fmdecorator.infrastructure.logger import Logger
from fmdecorator.rules.loader import FileSystemReader, RuleFileLoader
from fmdecorator.rules.models import MetadataSnapshot


class DeferredScheduler:
    """Collects background jobs so tests decide when they run."""

    def __init__(self):
        self.jobs: List[Callable[[], None]] = []

    def __call__(self, job: Callable[[], None]) -> None:
        self.jobs.append(job)

    def run_all(self) -> int:
        jobs, self.jobs = self.jobs, []
        for job in jobs:
            job()
        return len(jobs)


class RecordingHandler(logging.Handler):
    """Keeps emitted records for assertions."""

    def __init__(self):
        super().__init__(level=logging.DEBUG)
        self.records: List[logging.LogRecord] = []

    def emit(self, record: logging.LogRecord) -> None:
        self.records.append(record)

    def messages(self, level: int = logging.DEBUG) -> List[str]:
        return [r.getMessage() for r in self.records if r.levelno >= level]


@pytest.fixture
def log_handler() -> RecordingHandler:
    return RecordingHandler()


@pytest.fixture
def logger(log_handler: RecordingHandler) -> Logger:
    """Debug-level logger that records instead of printing."""
    return Logger("fmdecorator.tests", level="DEBUG", handlers=[log_handler])


@pytest.fixture
def deferred() -> DeferredScheduler:
    return DeferredScheduler()


@pytest.fixture
def vault(tmp_path: Path) -> Path:
    """Vault directory with a few rule files."""
    rules = tmp_path / "rules"
    rules.mkdir()

    (rules / "status.py").write_text(
        "lambda metadata: {\n"
        "    'classNames': ['status-' + str(metadata.frontmatter.get('status', 'none'))],\n"
        "    'elements': [{'className': 'status-badge', 'text': 'STATUS'}],\n"
        "}\n"
    )
    (rules / "module_rule.py").write_text(
        "PUBLIC_TAGS = ['public']\n"
        "\n"
        "def main(metadata):\n"
        "    result = {'classNames': [], 'elements': []}\n"
        "    if any(t in PUBLIC_TAGS for t in metadata.tags):\n"
        "        result['elements'].append({'className': 'public', 'text': 'public',\n"
        "                                   'style': {'backgroundColor': 'red'}})\n"
        "    else:\n"
        "        result['elements'].append({'className': 'private', 'text': 'private'})\n"
        "    return result\n"
    )
    (rules / "broken.py").write_text("lambda metadata: 1 / 0\n")
    (rules / "syntax.py").write_text("def main(metadata)\n    return {}\n")

    return tmp_path


@pytest.fixture
def cache() -> RuleFileCache:
    return RuleFileCache()


@pytest.fixture
def loader(cache: RuleFileCache, vault: Path, deferred: DeferredScheduler, logger: Logger) -> RuleFileLoader:
    return RuleFileLoader(cache, FileSystemReader(vault), scheduler=deferred, logger=logger)


@pytest.fixture
def snapshot() -> MetadataSnapshot:
    return MetadataSnapshot.build(
        "projects/x.md",
        tags=["#work", "#public"],
        frontmatter={"status": "doing", "publish": True, "aliases": ["x", "ex"]},
    )


@pytest.fixture
def sample_settings() -> Dict[str, Any]:
    """Settings in the persisted (camelCase) format."""
    return {
        "vault": ".",
        "rules": [
            {
                "id": "1",
                "name": "Work notes",
                "enabled": True,
                "className": "is-work",
                "config": {
                    "type": "individual",
                    "tags": ["work", "!archive"],
                    "paths": [],
                    "titles": [],
                    "frontmatter": {},
                },
            },
            {
                "id": "2",
                "name": "Status",
                "enabled": True,
                "className": "",
                "config": {"type": "function-file", "filePath": "rules/status.py"},
            },
            {
                "id": "3",
                "name": "Disabled",
                "enabled": False,
                "className": "never",
                "config": {"type": "individual", "tags": ["work"]},
            },
        ],
    }
