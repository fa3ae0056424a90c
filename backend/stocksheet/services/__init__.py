"""Service layer: grid backends, sheet modeling and data ingestion."""
