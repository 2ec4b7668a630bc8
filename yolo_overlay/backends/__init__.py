"""
Inference collaborators.

Kept apart from the post-processing core so the pipeline can be used (and
tested) without an inference runtime installed.
"""

from __future__ import annotations

__all__ = []
