"""Core infrastructure for the contact triage engine."""
