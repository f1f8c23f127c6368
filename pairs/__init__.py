"""Pairs: a memory-matching game engine hosted on Temporal."""
