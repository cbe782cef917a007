"""Service layer error taxonomy."""
