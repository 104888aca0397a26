"""Core domain layer for cacheaside."""
