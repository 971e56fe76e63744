"""Nexus activity harvester."""
