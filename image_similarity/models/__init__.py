"""Domain records, ORM models and API schemas."""
