"""sectionsr: spaced-repetition scheduling for content sections."""

from sectionsr.consts import VERSION

__version__ = VERSION
