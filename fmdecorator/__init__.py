"""fmdecorator - CSS classes and badges for documents, driven by metadata rules.

Hosts build a MetadataSnapshot per document event and hand it to a
DecoratorEngine (see ``fmdecorator.main``), which evaluates the configured
rules and returns one result per enabled rule.
"""

from fmdecorator.core.constants import FMDECORATOR_VERSION

__version__ = FMDECORATOR_VERSION
