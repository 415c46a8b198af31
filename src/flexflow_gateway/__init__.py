"""FlexFlow Gateway: tiered rate limiting in front of the FlexFlow API."""

__version__ = "0.1.0"
