"""Grade computation and bulk grade entry service for multi-school deployments."""
