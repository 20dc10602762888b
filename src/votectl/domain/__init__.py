"""Domain layer — pure cluster, key and vote logic with no I/O."""
