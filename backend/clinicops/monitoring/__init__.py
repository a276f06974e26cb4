"""Metrics for the scheduling engine."""
