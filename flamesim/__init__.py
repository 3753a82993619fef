"""Flame simulator client: provocative rewrites, simulated replies, images, confirmed publishing."""
