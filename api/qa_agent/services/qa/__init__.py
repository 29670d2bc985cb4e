"""Channel Q&A mining and matching."""
