"""Kolibri stablecoin protocol reads."""
from .reader import KolibriReader

__all__ = ["KolibriReader"]
