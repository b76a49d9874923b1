"""Consensus synthesis over gathered evidence."""

from .synthesizer import ConsensusSynthesizer

__all__ = ["ConsensusSynthesizer"]
