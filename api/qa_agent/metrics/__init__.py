"""Prometheus metrics for the Q&A agent."""
