"""Release metadata models, sources and resolution."""
