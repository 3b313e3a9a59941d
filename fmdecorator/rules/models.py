#!/usr/bin/env python3
"""Data model shared by the rule evaluators.

This module defines:
- MetadataSnapshot: the per-document metadata a rule is evaluated against
- IndividualConfig / FileFunctionConfig / UnrecognizedConfig: rule config variants
- Rule: a named, enableable rule with its config
- EvaluationResult / DecorationElement: what a matching rule produces

Persisted settings use camelCase keys (``className``, ``filePath``); the
``from_dict``/``to_dict`` helpers translate between those and attributes.

Example:
    >>> snapshot = MetadataSnapshot.build("projects/x.md", tags=["#work"])
    >>> snapshot.title, snapshot.tags
    ('x', ('work',))
"""

import re
from dataclasses import dataclass, field
from datetime import date
from pathlib import PurePosixPath
from types import MappingProxyType
from typing import Any, ClassVar, Dict, Iterable, List, Mapping, Optional, Tuple, Union

from fmdecorator.core.constants import (
    CONTAINER_CLASS_PREFIX,
    RuleId,
    TAG_MARKER,
    RuleInputType,
)

Scalar = Union[str, int, float, bool, date]
FrontmatterEntry = Union[Scalar, Tuple[Scalar, ...]]


def freeze(value: Any) -> Any:
    """Recursively convert mappings to read-only proxies and lists to tuples."""
    if isinstance(value, Mapping):
        return MappingProxyType({k: freeze(v) for k, v in value.items()})
    if isinstance(value, (list, tuple)):
        return tuple(freeze(v) for v in value)
    return value


def thaw(value: Any) -> Any:
    """Inverse of :func:`freeze`, producing plain dicts and lists."""
    if isinstance(value, Mapping):
        return {k: thaw(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [thaw(v) for v in value]
    return value


@dataclass(frozen=True)
class MetadataSnapshot:
    """Immutable metadata for one document at evaluation time.

    Built by the host on document open, rename and metadata resolution.
    Rule functions receive this object directly.
    """

    path: str
    title: str
    tags: Tuple[str, ...] = ()
    frontmatter: Mapping[str, Any] = field(default_factory=dict)

    def __post_init__(self):
        object.__setattr__(self, "tags", tuple(self.tags))
        object.__setattr__(self, "frontmatter", freeze(self.frontmatter or {}))

    @classmethod
    def build(
        cls,
        path: str,
        tags: Iterable[str] = (),
        frontmatter: Optional[Mapping[str, Any]] = None,
        title: Optional[str] = None,
    ) -> "MetadataSnapshot":
        """Build a snapshot from raw host data.

        Args:
            path: Document path relative to the vault
            tags: Tags as the host reports them (a leading "#" is dropped)
            frontmatter: Parsed frontmatter, if the document has any
            title: Document title (defaults to the file name without extension)

        Returns:
            New snapshot
        """
        if title is None:
            title = PurePosixPath(path).stem
        clean_tags = tuple(
            tag[len(TAG_MARKER):] if tag.startswith(TAG_MARKER) else tag for tag in tags
        )
        return cls(path=path, title=title, tags=clean_tags, frontmatter=frontmatter or {})

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "MetadataSnapshot":
        """Build a snapshot from a plain mapping.

        Raises:
            ValueError: If ``path`` is missing or a field has the wrong type
        """
        path = data.get("path")
        if not isinstance(path, str) or not path:
            raise ValueError("snapshot requires a non-empty 'path'")

        tags = data.get("tags") or []
        if isinstance(tags, str) or not isinstance(tags, (list, tuple)):
            raise ValueError("snapshot 'tags' must be a list of strings")

        frontmatter = data.get("frontmatter") or {}
        if not isinstance(frontmatter, Mapping):
            raise ValueError("snapshot 'frontmatter' must be a mapping")

        title = data.get("title")
        if title is not None and not isinstance(title, str):
            raise ValueError("snapshot 'title' must be a string")

        return cls.build(path, tags=[str(t) for t in tags], frontmatter=frontmatter, title=title)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "path": self.path,
            "title": self.title,
            "tags": list(self.tags),
            "frontmatter": thaw(self.frontmatter),
        }


@dataclass(frozen=True)
class IndividualConfig:
    """Declarative criteria matched by the built-in matcher.

    Each token in ``tags``, ``paths`` and ``titles`` may start with "!" to
    exclude instead of include.
    """

    type: ClassVar[RuleInputType] = RuleInputType.INDIVIDUAL

    tags: Tuple[str, ...] = ()
    paths: Tuple[str, ...] = ()
    titles: Tuple[str, ...] = ()
    frontmatter: Mapping[str, FrontmatterEntry] = field(default_factory=dict)

    def __post_init__(self):
        object.__setattr__(self, "tags", tuple(self.tags))
        object.__setattr__(self, "paths", tuple(self.paths))
        object.__setattr__(self, "titles", tuple(self.titles))
        object.__setattr__(self, "frontmatter", freeze(self.frontmatter or {}))

    def to_dict(self) -> Dict[str, Any]:
        return {
            "type": self.type.value,
            "tags": list(self.tags),
            "paths": list(self.paths),
            "titles": list(self.titles),
            "frontmatter": thaw(self.frontmatter),
        }


@dataclass(frozen=True)
class FileFunctionConfig:
    """Reference to an externally stored rule function."""

    type: ClassVar[RuleInputType] = RuleInputType.FUNCTION_FILE

    file_path: str = ""

    def to_dict(self) -> Dict[str, Any]:
        return {"type": self.type.value, "filePath": self.file_path}


@dataclass(frozen=True)
class UnrecognizedConfig:
    """Config whose ``type`` this version does not know; never matches."""

    type: str
    options: Mapping[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        data = thaw(self.options)
        data["type"] = self.type
        return data


RuleConfig = Union[IndividualConfig, FileFunctionConfig, UnrecognizedConfig]


@dataclass(frozen=True)
class Rule:
    """A named, enableable unit pairing a config with its effect."""

    id: RuleId
    name: str
    enabled: bool = True
    class_name: str = ""
    config: RuleConfig = field(default_factory=IndividualConfig)

    @property
    def container_class(self) -> str:
        """Class of the element holding this rule's decoration elements."""
        return f"{CONTAINER_CLASS_PREFIX}{self.id}"

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "enabled": self.enabled,
            "className": self.class_name,
            "config": self.config.to_dict(),
        }


_CAMEL_HUMP = re.compile(r"[A-Z]")


@dataclass
class DecorationElement:
    """A badge for the host to render next to the document."""

    class_name: Optional[str] = None
    text: Optional[str] = None
    style: Optional[Dict[str, Any]] = None

    def css_properties(self) -> Dict[str, str]:
        """Style with camelCase property names converted to kebab-case."""
        if not self.style:
            return {}
        return {
            _CAMEL_HUMP.sub(lambda m: f"-{m.group(0).lower()}", key): str(value)
            for key, value in self.style.items()
        }

    @classmethod
    def from_value(cls, value: Any) -> "DecorationElement":
        """Coerce a rule function's element description.

        Raises:
            ValueError: If the value is not an element-shaped mapping
        """
        if isinstance(value, DecorationElement):
            return value
        if not isinstance(value, Mapping):
            raise ValueError(f"decoration element must be a mapping, got {type(value).__name__}")

        class_name = value.get("className", value.get("class_name"))
        if class_name is not None and not isinstance(class_name, str):
            raise ValueError("decoration element 'className' must be a string")

        text = value.get("text")
        if text is not None:
            text = str(text)

        style = value.get("style")
        if style is not None:
            if not isinstance(style, Mapping):
                raise ValueError("decoration element 'style' must be a mapping")
            style = dict(style)

        return cls(class_name=class_name, text=text, style=style)

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {}
        if self.class_name is not None:
            data["className"] = self.class_name
        if self.text is not None:
            data["text"] = self.text
        if self.style is not None:
            data["style"] = dict(self.style)
        return data


@dataclass
class EvaluationResult:
    """Output of a rule that applies to the current document."""

    class_names: List[str] = field(default_factory=list)
    elements: Optional[List[DecorationElement]] = None

    @classmethod
    def from_value(cls, value: Any) -> Optional["EvaluationResult"]:
        """Coerce whatever a rule function returned.

        Args:
            value: Return value of a rule function

        Returns:
            EvaluationResult, or None when the value is not a mapping

        Raises:
            ValueError: If the value is a mapping with ill-shaped fields
        """
        if isinstance(value, EvaluationResult):
            return value
        if not isinstance(value, Mapping):
            return None

        raw_classes = value.get("classNames", value.get("class_names"))
        if raw_classes is None:
            raw_classes = []
        if isinstance(raw_classes, str) or not isinstance(raw_classes, (list, tuple)):
            raise ValueError("'classNames' must be a list of strings")
        if not all(isinstance(c, str) for c in raw_classes):
            raise ValueError("'classNames' must only contain strings")

        raw_elements = value.get("elements")
        elements = None
        if raw_elements is not None:
            if not isinstance(raw_elements, (list, tuple)):
                raise ValueError("'elements' must be a list")
            elements = [DecorationElement.from_value(e) for e in raw_elements]

        return cls(class_names=list(raw_classes), elements=elements)

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {"classNames": list(self.class_names)}
        if self.elements is not None:
            data["elements"] = [e.to_dict() for e in self.elements]
        return data
