"""Core building blocks: exceptions, value objects and utilities."""
