"""Codec and structured-value serialization primitives."""
