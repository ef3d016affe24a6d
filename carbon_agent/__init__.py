"""
Carbon Agent

Publishes named metrics to a Graphite carbon server on a fixed interval.
"""

__version__ = "1.0.0"
