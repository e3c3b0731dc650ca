"""Bundled question bank files."""
