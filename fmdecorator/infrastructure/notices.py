#!/usr/bin/env python3
"""User-facing notices for rule file preload failures.

The engine only produces structured PreloadWarning records; this module
renders them into the text a host shows in a popup (or the CLI prints).
Rendering uses a Jinja2 template so hosts can supply their own wording.

Example:
    >>> warning = PreloadWarning("Status", "rules/status.py", "No such file")
    >>> print(render_preload_notice([warning]))
    ⚠️ File Metadata Decorator
    Failed to load rule file for "Status": rules/status.py
    No such file
"""

from dataclasses import dataclass
from typing import Iterable, Optional

import jinja2

DEFAULT_NOTICE_TEMPLATE = """\
⚠️ File Metadata Decorator
{% for warning in warnings %}
Failed to load rule file for "{{ warning.rule_name }}": {{ warning.file_path }}
{{ warning.error }}
{% endfor %}"""


@dataclass(frozen=True)
class PreloadWarning:
    """A function-file rule whose source could not be preloaded."""

    rule_name: str
    file_path: str
    error: str

    @property
    def message(self) -> str:
        return f'Failed to load rule file for "{self.rule_name}": {self.file_path}'


_environment = jinja2.Environment(
    autoescape=False,
    trim_blocks=True,
    keep_trailing_newline=False,
    undefined=jinja2.StrictUndefined,
)


def render_preload_notice(
    warnings: Iterable[PreloadWarning], template: Optional[str] = None
) -> str:
    """Render preload warnings as one notice.

    Args:
        warnings: Warnings collected at startup
        template: Jinja2 template text (DEFAULT_NOTICE_TEMPLATE if None)

    Returns:
        Notice text, or an empty string when there is nothing to report

    Raises:
        jinja2.TemplateError: If a custom template is invalid
    """
    warnings = list(warnings)
    if not warnings:
        return ""
    compiled = _environment.from_string(template or DEFAULT_NOTICE_TEMPLATE)
    return compiled.render(warnings=warnings).rstrip("\n")
