"""Environment commands: compile artifacts, list classes."""
