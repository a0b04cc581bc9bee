"""Entities and builders for declaring agent graphs and projects."""
