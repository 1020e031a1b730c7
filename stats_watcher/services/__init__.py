"""Service modules"""
from .pipeline import StatsPipeline
from .scheduler import PassState, Scheduler

__all__ = ["PassState", "Scheduler", "StatsPipeline"]
