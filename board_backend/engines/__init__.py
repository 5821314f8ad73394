"""Normalization engines for circuit document elements."""
