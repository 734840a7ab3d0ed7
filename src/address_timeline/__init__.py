"""Address assignment timeline engine."""
