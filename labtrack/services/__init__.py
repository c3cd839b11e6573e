"""Service layer: one function per entity operation."""
