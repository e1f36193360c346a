"""Node commands: dump, lookup and edit hierarchy data of one node."""
