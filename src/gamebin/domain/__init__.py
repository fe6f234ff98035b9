"""Domain layer: collection definitions, schemas and the collection store."""
