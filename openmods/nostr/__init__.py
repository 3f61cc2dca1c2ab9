"""Protocol layer: events, tags, NIP-19 keys."""
