"""Infrastructure layer: remote clients, storage and wiring."""
