"""Service layer: async functions over an ``AsyncSession``."""
