"""Horseshoe league tournament engine."""
