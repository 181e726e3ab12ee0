"""Application layer: ports, command models and orchestrating services."""
