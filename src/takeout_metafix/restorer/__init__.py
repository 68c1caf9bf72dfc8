"""Sidecar resolution and metadata restoration engine."""

from .config import MetafixConfig
from .models import MatchStrategy, Outcome
from .pipeline import RestorePipeline
from .resolver import Resolver

__all__ = [
    'MetafixConfig',
    'MatchStrategy',
    'Outcome',
    'RestorePipeline',
    'Resolver',
]
