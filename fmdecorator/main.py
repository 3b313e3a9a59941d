#!/usr/bin/env python3
"""Engine wiring for fmdecorator hosts.

This module handles:
- Component initialization (RuleFileCache, RuleFileLoader, evaluators)
- Startup preload of function-file rules with per-rule failure isolation
- One evaluation pass per document event

Example:
    >>> engine = DecoratorEngine(rules, FileSystemReader("/vault"))
    >>> warnings = engine.preload_rule_files()
    >>> evaluations = engine.evaluate(snapshot)
"""

from typing import Any, Dict, Iterable, List, Optional

from fmdecorator.core.constants import RuleFilePath, RuleInputType, SourceText
from fmdecorator.infrastructure.cache_manager import RuleFileCache
from fmdecorator.infrastructure.config_manager import (
    ConfigManager,
    ConfigurationError,
    rules_from_list,
)
from fmdecorator.infrastructure.logger import Logger, get_logger
from fmdecorator.infrastructure.notices import PreloadWarning
from fmdecorator.rules.evaluator import RuleEvaluation, RuleEvaluator
from fmdecorator.rules.function_evaluator import FunctionRuleEvaluator
from fmdecorator.rules.loader import (
    FileSystemReader,
    LoadError,
    Reader,
    RuleFileLoader,
    Scheduler,
)
from fmdecorator.rules.models import MetadataSnapshot, Rule


def run_inline(job) -> None:
    """Scheduler that runs load jobs immediately on the caller's thread."""
    job()


class DecoratorEngine:
    """
    Owns the rule list and the components that evaluate it.

    One RuleFileCache is created per engine and shared by the loader
    and the function rule evaluator.
    """

    def __init__(
        self,
        rules: Iterable[Rule],
        reader: Reader,
        scheduler: Optional[Scheduler] = None,
        logger: Optional[Logger] = None,
        cache: Optional[RuleFileCache] = None,
    ):
        """
        Initialize the engine.

        Args:
            rules: Ordered rule list from settings
            reader: Callable returning the text of a rule file
            scheduler: Runs background loads (daemon thread if None)
            logger: Logger instance
            cache: Existing cache to share (new one if None)
        """
        self.logger = logger or get_logger()
        self.rules: List[Rule] = list(rules)
        self.cache = cache if cache is not None else RuleFileCache()
        self.loader = RuleFileLoader(self.cache, reader, scheduler=scheduler, logger=self.logger)
        self.function_evaluator = FunctionRuleEvaluator(self.loader, logger=self.logger)
        self.evaluator = RuleEvaluator(self.function_evaluator, logger=self.logger)

    @classmethod
    def from_config(
        cls,
        config: ConfigManager,
        reader: Optional[Reader] = None,
        scheduler: Optional[Scheduler] = None,
        logger: Optional[Logger] = None,
    ) -> "DecoratorEngine":
        """
        Build an engine from configuration and follow its rule changes.

        Args:
            config: Loaded configuration
            reader: Rule file reader (vault FileSystemReader if None)
            scheduler: Background scheduler; when None, loads run inline if
                ``fmdecorator.loader.background`` is false
            logger: Logger instance

        Raises:
            ConfigurationError: If the rule list is malformed
        """
        if reader is None:
            reader = FileSystemReader(config.get("fmdecorator.vault", "."))
        if scheduler is None and not config.get("fmdecorator.loader.background", True):
            scheduler = run_inline
        engine = cls(config.load_rules(), reader, scheduler=scheduler, logger=logger)
        engine.watch_config(config)
        return engine

    def set_rules(self, rules: Iterable[Rule]) -> None:
        """Replace the rule list (cached rule files are kept)."""
        self.rules = list(rules)

    def function_file_rules(self) -> List[Rule]:
        """Enabled rules whose config is a function file."""
        return [
            rule
            for rule in self.rules
            if rule.enabled and rule.config.type == RuleInputType.FUNCTION_FILE
        ]

    def preload_rule_files(self) -> List[PreloadWarning]:
        """
        Preload every enabled function-file rule.

        A failing rule is logged and reported; the others still load.

        Returns:
            One warning per rule whose file could not be read
        """
        return self._preload(self.function_file_rules())

    def update_rules(self, rules: Iterable[Rule]) -> List[PreloadWarning]:
        """
        Replace the rule list and preload rule files it newly refers to.

        Paths that were already in use keep their cached source; a rule
        whose ``filePath`` was edited is preloaded under its new path.

        Returns:
            One warning per newly referenced file that could not be read
        """
        previous = {rule.config.file_path for rule in self.function_file_rules()}
        self.set_rules(rules)
        added = [
            rule for rule in self.function_file_rules()
            if rule.config.file_path not in previous
        ]
        return self._preload(added)

    def watch_config(self, config: ConfigManager) -> None:
        """Follow rule changes made through ``config`` (set, load_dict, reload)."""
        config.add_watcher(self._on_config_change)

    def unwatch_config(self, config: ConfigManager) -> None:
        """Stop following ``config``."""
        config.remove_watcher(self._on_config_change)

    def _on_config_change(self, merged: Dict[str, Any]) -> None:
        entries = merged.get("fmdecorator", {}).get("rules")
        try:
            rules = rules_from_list(entries)
        except ConfigurationError as e:
            # Keep the last valid rule list
            self.logger.error("Ignoring invalid rule settings", error=e.message)
            return
        self.update_rules(rules)

    def _preload(self, rules: List[Rule]) -> List[PreloadWarning]:
        """Preload the given rules' files, collecting failures."""
        warnings = []
        for rule in rules:
            file_path = rule.config.file_path
            try:
                self.loader.preload(file_path)
            except LoadError as e:
                self.logger.error(
                    f'Failed to load rule file for "{rule.name}": {file_path}',
                    error=e.detail,
                )
                warnings.append(
                    PreloadWarning(rule_name=rule.name, file_path=file_path, error=e.detail)
                )

        self.logger.info(
            "Rule files preloaded",
            loaded=len(rules) - len(warnings),
            failed=len(warnings),
        )
        return warnings

    def reload_rule_file(self, file_path: RuleFilePath) -> SourceText:
        """
        Re-read one rule file after the user edited it or its path.

        Raises:
            LoadError: If the file cannot be read
        """
        return self.loader.preload(file_path)

    def evaluate(self, snapshot: MetadataSnapshot) -> List[RuleEvaluation]:
        """
        Run one evaluation pass for a document.

        Args:
            snapshot: Document metadata

        Returns:
            One RuleEvaluation per enabled rule, in rule order
        """
        return self.evaluator.evaluate_rules(self.rules, snapshot)

    def get_stats(self) -> dict:
        return {
            "rules": len(self.rules),
            "cache": self.cache.get_stats(),
            "function_rules": self.function_evaluator.get_stats(),
        }
