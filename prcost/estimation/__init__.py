"""Aggregation of harvested PR activity and token/cost projection."""
