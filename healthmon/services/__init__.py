"""Monitoring services: dispatch, aggregation, sampling and history."""
