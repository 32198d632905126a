"""Reading tracker import pipeline: parse exports, deduplicate, load."""

__version__ = "0.1.0"
