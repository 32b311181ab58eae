"""Update availability and cache invalidation."""
