"""Workspace discovery, metadata loading, skills and the context store."""
