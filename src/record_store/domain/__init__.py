"""Domain layer - value objects, entities and pure services for the record store."""
