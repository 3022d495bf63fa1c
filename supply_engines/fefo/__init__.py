"""FEFO - creation-time-ordered lot consumption."""

from supply_engines.fefo.consumer import ConsumptionResult, consume

__all__ = ["ConsumptionResult", "consume"]
