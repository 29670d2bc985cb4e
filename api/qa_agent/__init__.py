"""Slack channel Q&A agent."""
