#!/usr/bin/env python3
"""Evaluation of rule functions loaded from files.

A rule file holds Python source that produces a callable taking a
MetadataSnapshot and returning an EvaluationResult-shaped value:
- A single expression, e.g. ``lambda metadata: {"classNames": ["x"]}``
- Or a module defining ``main(metadata)``

The source runs with the privileges of the host process. Rule authors
are the vault owners, so no sandbox is applied.

Every failure (syntax, missing entry point, exception in the function,
ill-shaped return value) is caught per call and turned into None, so a
broken rule never stops the others. The next pass simply tries again.

Example:
    >>> run_rule_source("lambda m: {'classNames': [m.title]}", snapshot)
    EvaluationResult(class_names=['x'], elements=None)
"""

import builtins
from typing import Any, Callable, Dict, Optional

from fmdecorator.core.constants import RULE_FILE_ENTRYPOINT, ErrorCode, SourceText
from fmdecorator.infrastructure.logger import Logger, get_logger
from fmdecorator.rules.loader import RuleFileLoader
from fmdecorator.rules.models import EvaluationResult, FileFunctionConfig, MetadataSnapshot

RuleFunction = Callable[[MetadataSnapshot], Any]


class EvaluationError(Exception):
    """A rule function could not be built or raised while running."""

    def __init__(
        self,
        message: str,
        file_path: Optional[str] = None,
        error_code: ErrorCode = ErrorCode.EVALUATION_FAILED,
    ):
        self.message = message
        self.file_path = file_path
        self.error_code = error_code
        super().__init__(message)


def compile_rule_function(source: SourceText, filename: str = "<rule>") -> RuleFunction:
    """Turn rule source into the callable it defines.

    Args:
        source: Rule file text
        filename: Name reported in tracebacks

    Returns:
        The rule function

    Raises:
        EvaluationError: If the source yields no callable
        SyntaxError: If the source is neither an expression nor a module
    """
    namespace: Dict[str, Any] = {"__name__": "fmdecorator_rule", "__builtins__": builtins}

    try:
        code = compile(source.strip(), filename, "eval")
    except SyntaxError:
        code = None

    if code is not None:
        func = eval(code, namespace)
    else:
        exec(compile(source, filename, "exec"), namespace)
        if RULE_FILE_ENTRYPOINT not in namespace:
            raise EvaluationError(
                f"rule file defines no '{RULE_FILE_ENTRYPOINT}' function", filename
            )
        func = namespace[RULE_FILE_ENTRYPOINT]

    if not callable(func):
        raise EvaluationError(
            f"rule file must produce a callable, got {type(func).__name__}", filename
        )
    return func


def run_rule_source(
    source: SourceText, metadata: MetadataSnapshot, filename: str = "<rule>"
) -> Optional[EvaluationResult]:
    """Build the rule function from source and run it once.

    Args:
        source: Rule file text
        metadata: Snapshot passed to the function
        filename: Name reported in errors

    Returns:
        Coerced result, or None when the function returned a non-mapping

    Raises:
        EvaluationError: On any failure while building or running the function
    """
    try:
        func = compile_rule_function(source, filename)
        return EvaluationResult.from_value(func(metadata))
    except (EvaluationError, KeyboardInterrupt, GeneratorExit):
        raise
    except BaseException as e:
        # SystemExit from a rule file must not end the evaluation pass
        raise EvaluationError(f"{type(e).__name__}: {e}", filename) from e


class FunctionRuleEvaluator:
    """Evaluates function-file rules from the shared cache."""

    def __init__(self, loader: RuleFileLoader, logger: Optional[Logger] = None):
        """Initialize evaluator.

        Args:
            loader: Loader owning the shared cache
            logger: Logger instance (global logger if None)
        """
        self._loader = loader
        self._logger = logger or get_logger()
        self._stats = {
            "evaluations": 0,
            "cache_misses": 0,
            "failures": 0,
        }

    def evaluate(
        self, config: FileFunctionConfig, snapshot: MetadataSnapshot
    ) -> Optional[EvaluationResult]:
        """Run a rule function against a snapshot.

        Never blocks on I/O: an uncached file triggers a background load
        and yields None for this pass.

        Args:
            config: Function-file rule config
            snapshot: Document metadata

        Returns:
            The function's result, or None
        """
        self._stats["evaluations"] += 1
        file_path = config.file_path

        source = self._loader.cache.get(file_path)
        if source is None:
            self._stats["cache_misses"] += 1
            self._logger.warning(
                "File not cached, loading asynchronously", file_path=file_path
            )
            self._loader.load_in_background(file_path)
            return None

        try:
            result = run_rule_source(source, snapshot, file_path)
        except EvaluationError as e:
            self._stats["failures"] += 1
            self._logger.exception("File function evaluation error", e, file_path=file_path)
            return None

        if result is None:
            self._logger.debug("Rule function returned no result", file_path=file_path)
        return result

    def get_stats(self) -> Dict[str, int]:
        return self._stats.copy()
