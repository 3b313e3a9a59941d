"""fmdecorator Rules System.

This module provides rule evaluation against document metadata:
- Matcher: declarative tag/path/title/frontmatter criteria
- RuleFileLoader: loading rule function source into the shared cache
- FunctionRuleEvaluator: running rule functions with failure isolation
- RuleEvaluator: dispatch by rule config type
"""

from .evaluator import RuleEvaluation, RuleEvaluator
from .frontmatter import FrontmatterValue, first_matching_key
from .function_evaluator import (
    EvaluationError,
    FunctionRuleEvaluator,
    compile_rule_function,
    run_rule_source,
)
from .loader import FileSystemReader, LoadError, RuleFileLoader, run_in_thread
from .matcher import Polarity, evaluate_individual, split_by_polarity
from .models import (
    DecorationElement,
    EvaluationResult,
    FileFunctionConfig,
    IndividualConfig,
    MetadataSnapshot,
    Rule,
    RuleConfig,
    UnrecognizedConfig,
)

__all__ = [
    # Data model
    "MetadataSnapshot",
    "IndividualConfig",
    "FileFunctionConfig",
    "UnrecognizedConfig",
    "RuleConfig",
    "Rule",
    "DecorationElement",
    "EvaluationResult",
    # Matching
    "FrontmatterValue",
    "first_matching_key",
    "Polarity",
    "split_by_polarity",
    "evaluate_individual",
    # Rule files
    "LoadError",
    "FileSystemReader",
    "RuleFileLoader",
    "run_in_thread",
    "EvaluationError",
    "FunctionRuleEvaluator",
    "compile_rule_function",
    "run_rule_source",
    # Facade
    "RuleEvaluation",
    "RuleEvaluator",
]
