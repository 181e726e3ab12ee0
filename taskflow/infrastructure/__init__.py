"""Infrastructure layer: logging setup, in-memory stubs and system adapters."""
