"""HTTP API for GameBin."""
