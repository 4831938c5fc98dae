"""Aggregation routines for Azure activity."""

from .operations import AggregationStats, OperationAggregator, aggregate

__all__ = ["AggregationStats", "OperationAggregator", "aggregate"]
