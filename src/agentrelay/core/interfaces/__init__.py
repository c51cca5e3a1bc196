"""Protocols for the collaborators the runner talks to."""
