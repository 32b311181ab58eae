"""Repository provider clients."""
