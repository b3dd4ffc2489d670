"""Store service business logic, independent of the HTTP layer."""
