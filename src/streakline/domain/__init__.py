"""Domain layer: persistence protocols the engine is written against."""
