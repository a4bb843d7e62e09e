"""
Core orchestration package: run context, error taxonomy, batch pipelines.

This __init__ intentionally exports NOTHING to avoid circular imports.
"""

__all__ = []
