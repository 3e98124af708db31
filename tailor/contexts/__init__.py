"""Bounded contexts of the TAILOR engine."""
