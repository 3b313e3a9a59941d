#!/usr/bin/env python3
"""Single entry point for evaluating rules.

RuleEvaluator dispatches each rule on its config type:
- "individual" rules go to the declarative matcher
- "function-file" rules go to the FunctionRuleEvaluator
- anything else never matches

Example:
    >>> evaluator = RuleEvaluator(FunctionRuleEvaluator(loader))
    >>> for evaluation in evaluator.evaluate_rules(rules, snapshot):
    ...     print(evaluation.rule.name, evaluation.applied_class_names)
"""

from dataclasses import dataclass
from typing import Iterable, List, Optional

from fmdecorator.core.constants import STATE_ATTRIBUTE_PREFIX, RuleInputType
from fmdecorator.infrastructure.logger import Logger, get_logger
from fmdecorator.rules.function_evaluator import FunctionRuleEvaluator
from fmdecorator.rules.matcher import evaluate_individual
from fmdecorator.rules.models import EvaluationResult, MetadataSnapshot, Rule


@dataclass
class RuleEvaluation:
    """Outcome of one enabled rule in one evaluation pass."""

    rule: Rule
    result: Optional[EvaluationResult]

    @property
    def matched(self) -> bool:
        return self.result is not None

    @property
    def applied_class_names(self) -> List[str]:
        """Classes the host should add to the document view.

        Individual rules contribute their own class name on match; every
        rule contributes the non-empty class names of its result.
        """
        if self.result is None:
            return []
        names: List[str] = []
        if self.rule.config.type == RuleInputType.INDIVIDUAL and self.rule.class_name:
            names.append(self.rule.class_name)
        names.extend(name for name in self.result.class_names if name)
        return names

    @property
    def container_class(self) -> str:
        return self.rule.container_class

    @property
    def state_attribute(self) -> str:
        """Attribute the host uses to remember classes applied by this rule."""
        return f"{STATE_ATTRIBUTE_PREFIX}{self.rule.id}"


class RuleEvaluator:
    """Routes rules to the matching evaluator.

    Holds no state of its own; the function evaluator shares the rule
    file cache with the loader.
    """

    def __init__(
        self,
        function_evaluator: FunctionRuleEvaluator,
        logger: Optional[Logger] = None,
    ):
        self._function_evaluator = function_evaluator
        self._logger = logger or get_logger()

    def evaluate(self, rule: Rule, snapshot: MetadataSnapshot) -> Optional[EvaluationResult]:
        """Evaluate one rule.

        Callers are expected to skip disabled rules.

        Args:
            rule: Rule to evaluate
            snapshot: Document metadata

        Returns:
            Result when the rule applies, None otherwise
        """
        config = rule.config
        if config.type == RuleInputType.INDIVIDUAL:
            return evaluate_individual(config, snapshot, self._logger)
        elif config.type == RuleInputType.FUNCTION_FILE:
            return self._function_evaluator.evaluate(config, snapshot)

        self._logger.debug("Unrecognized rule config", rule_id=rule.id, type=config.type)
        return None

    def evaluate_rules(
        self, rules: Iterable[Rule], snapshot: MetadataSnapshot
    ) -> List[RuleEvaluation]:
        """Evaluate all enabled rules in order.

        Args:
            rules: Ordered rule list
            snapshot: Document metadata

        Returns:
            One RuleEvaluation per enabled rule
        """
        evaluations = []
        for rule in rules:
            if not rule.enabled:
                continue
            with self._logger.add_context(rule_id=rule.id, rule_name=rule.name):
                result = self.evaluate(rule, snapshot)
            if result is not None:
                self._logger.debug(
                    "Rule applied", rule_id=rule.id, path=snapshot.path,
                    result=result.to_dict(),
                )
            evaluations.append(RuleEvaluation(rule=rule, result=result))
        return evaluations
