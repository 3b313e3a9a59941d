#!/usr/bin/env python3
"""Matcher for declarative (individual) rules.

Evaluation order:
- Negative tags, paths and titles are checked first; any hit rejects the rule
- Then the first positive hit wins: tag membership, path prefix,
  title substring, frontmatter value
- Nothing matching (including an all-empty config) means no result

Example:
    >>> config = IndividualConfig(tags=("!archive", "work"))
    >>> snapshot = MetadataSnapshot.build("notes/a.md", tags=["work", "archive"])
    >>> evaluate_individual(config, snapshot) is None
    True
"""

from typing import Iterable, List, NamedTuple, Optional

from fmdecorator.core.constants import NEGATION_MARKER
from fmdecorator.infrastructure.logger import Logger, get_logger
from fmdecorator.rules.frontmatter import first_matching_key
from fmdecorator.rules.models import EvaluationResult, IndividualConfig, MetadataSnapshot


class Polarity(NamedTuple):
    """Match tokens split into including and excluding ones."""

    positive: List[str]
    negative: List[str]


def split_by_polarity(tokens: Iterable[str]) -> Polarity:
    """Split tokens by the leading negation marker.

    Only the first marker is removed, so ``"!!x"`` excludes ``"!x"``.

    Args:
        tokens: Configured match tokens

    Returns:
        Polarity with positive and negative token lists, order preserved
    """
    positive: List[str] = []
    negative: List[str] = []
    for token in tokens:
        if token.startswith(NEGATION_MARKER):
            negative.append(token[len(NEGATION_MARKER):])
        else:
            positive.append(token)
    return Polarity(positive, negative)


def evaluate_individual(
    config: IndividualConfig,
    snapshot: MetadataSnapshot,
    logger: Optional[Logger] = None,
) -> Optional[EvaluationResult]:
    """Evaluate declarative criteria against a snapshot.

    The returned result carries no class names; the caller applies the
    rule's own ``class_name``.

    Args:
        config: Individual rule criteria
        snapshot: Document metadata
        logger: Logger for match decisions (global logger if None)

    Returns:
        Empty EvaluationResult on match, None otherwise
    """
    log = logger or get_logger()

    tags = split_by_polarity(config.tags)
    paths = split_by_polarity(config.paths)
    titles = split_by_polarity(config.titles)

    negative_match = (
        any(tag in snapshot.tags for tag in tags.negative)
        or any(snapshot.path.startswith(prefix) for prefix in paths.negative)
        or any(part in snapshot.title for part in titles.negative)
    )
    if negative_match:
        log.debug("negative matched", path=snapshot.path)
        return None

    if any(tag in snapshot.tags for tag in tags.positive):
        log.debug("tag matched", path=snapshot.path)
        return EvaluationResult(class_names=[])

    if any(snapshot.path.startswith(prefix) for prefix in paths.positive):
        log.debug("path matched", path=snapshot.path)
        return EvaluationResult(class_names=[])

    if any(part in snapshot.title for part in titles.positive):
        log.debug("title matched", path=snapshot.path)
        return EvaluationResult(class_names=[])

    key = first_matching_key(config.frontmatter, snapshot.frontmatter)
    if key is not None:
        log.debug("frontmatter matched", path=snapshot.path, key=key)
        return EvaluationResult(class_names=[])

    log.debug("no matched", path=snapshot.path, title=snapshot.title)
    return None
