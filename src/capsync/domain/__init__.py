"""Domain layer: model, reconciliation engine, events and services."""
