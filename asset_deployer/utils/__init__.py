"""Utility helpers for the deployer."""
