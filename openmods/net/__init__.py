"""Network adapters: HTTP client, relay transport, cancellation."""
