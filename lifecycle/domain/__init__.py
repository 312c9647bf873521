"""Domain layer: entities, enums and the lifecycle error taxonomy."""
