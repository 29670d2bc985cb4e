"""Slack Socket Mode channel plugin."""
