"""Infrastructure layer — JSON-RPC, pubsub and git adapters."""
