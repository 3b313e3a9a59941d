"""
fmdecorator Core: Constants and Type Definitions

This module provides package-wide constants, error codes, and the
identifiers used in persisted rule settings.
"""
from enum import Enum, IntEnum
from typing import TypeAlias

# Version information
FMDECORATOR_VERSION = "1.0.0"


class ErrorCode(IntEnum):
    """Standardized error codes for fmdecorator operations."""

    SUCCESS = 0  # Operation completed successfully
    INVALID_INPUT = 1  # Malformed settings or criteria
    NOT_FOUND = 2  # Rule file doesn't exist
    PERMISSION_DENIED = 3  # Rule file not readable
    INTERNAL_ERROR = 6  # Unexpected failure
    EVALUATION_FAILED = 7  # Rule function raised or returned garbage


class RuleInputType(str, Enum):
    """Variants of a rule's configuration (the persisted ``config.type``)."""

    INDIVIDUAL = "individual"
    FUNCTION_FILE = "function-file"


# Type aliases for clarity
RuleId: TypeAlias = str
RuleFilePath: TypeAlias = str
SourceText: TypeAlias = str

# Leading marker that turns a match-token into an exclusion
NEGATION_MARKER = "!"

# Leading marker the host strips from tags before building a snapshot
TAG_MARKER = "#"

# Names the host uses to track decorations per rule
CONTAINER_CLASS_PREFIX = "fmd-container-"
STATE_ATTRIBUTE_PREFIX = "data-fmd-classes-"

# Callable looked up when a rule file is a module rather than one expression
RULE_FILE_ENTRYPOINT = "main"

# Environment variable prefix for configuration overrides
ENV_PREFIX = "FMDECORATOR_"

