# PATH: strategy/__init__.py
"""Strategy package for ARBWATCH: evaluation, persistence, monitoring cycle."""

from strategy.config import MonitorSettings, load_monitor_settings
from strategy.persistence import SpikeTracker
from strategy.round_trip import PairEvaluation, RoundTripEvaluator

__all__ = [
    "MonitorSettings",
    "PairEvaluation",
    "RoundTripEvaluator",
    "SpikeTracker",
    "load_monitor_settings",
]
