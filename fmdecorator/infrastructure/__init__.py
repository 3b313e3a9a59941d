"""fmdecorator Infrastructure Layer.

Services used by the rule engine and its hosts:
- ConfigManager: layered YAML/environment configuration and rule settings
- RuleFileCache: shared cache of rule function sources
- Logger: structured logging
- Notices: rendering of preload failures for users
"""

from .cache_manager import CacheEntry, RuleFileCache
from .config_manager import (
    ConfigManager,
    ConfigSource,
    ConfigurationError,
    parse_frontmatter_criteria,
    parse_match_tokens,
    rule_from_dict,
    rules_from_list,
    update_frontmatter_criteria,
)
from .logger import Logger, LogLevel, get_logger, set_global_logger
from .notices import PreloadWarning, render_preload_notice

__all__ = [
    # Logger exports
    "Logger",
    "LogLevel",
    "get_logger",
    "set_global_logger",
    # Cache exports
    "CacheEntry",
    "RuleFileCache",
    # Config exports
    "ConfigSource",
    "ConfigurationError",
    "ConfigManager",
    "parse_match_tokens",
    "parse_frontmatter_criteria",
    "update_frontmatter_criteria",
    "rule_from_dict",
    "rules_from_list",
    # Notices
    "PreloadWarning",
    "render_preload_notice",
]
