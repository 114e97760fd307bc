"""Algorithms and the background worker running them."""
