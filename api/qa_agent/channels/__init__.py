"""Channel integrations for the Q&A agent."""
