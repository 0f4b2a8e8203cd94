"""Application layer - checkout session and its core services."""
