"""Static option data seeded into the database or served as-is."""
