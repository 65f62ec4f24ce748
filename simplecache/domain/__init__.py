"""Domain Layer: value objects, error types and the ports the engine depends on."""
