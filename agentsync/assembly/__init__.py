"""Inheritance resolution and definition document assembly."""
