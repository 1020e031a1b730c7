"""Tezos chain client."""
from .client import TezosClient

__all__ = ["TezosClient"]
