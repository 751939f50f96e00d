"""User identity validation service with oracle fulfillment callbacks."""

from .core.config import VERSION

__version__ = VERSION
