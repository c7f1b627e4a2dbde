"""Fallback response generation."""

from advisor_orchestrator.responses.static_generator import (
    PATH_CONFIDENCE,
    StaticPath,
    StaticResponseGenerator,
)

__all__ = ["PATH_CONFIDENCE", "StaticPath", "StaticResponseGenerator"]
