"""Domain layer: value objects and their invariants."""
