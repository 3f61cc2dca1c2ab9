"""Project and release manifests."""
