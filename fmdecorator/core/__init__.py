"""fmdecorator Core - Shared constants and type definitions.

Import specific names from submodules:
    from fmdecorator.core.constants import ErrorCode, RuleInputType
"""

from fmdecorator.core import constants

__all__ = [
    "constants",
]
