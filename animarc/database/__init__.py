"""Persistence schema for Animarc."""
