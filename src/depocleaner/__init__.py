"""depocleaner - find and remove regenerable dependency folders."""

import logging

__version__ = "0.1.0"

logging.getLogger(__name__).addHandler(logging.NullHandler())
