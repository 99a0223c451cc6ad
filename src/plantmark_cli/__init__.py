"""Command line interface for PlantMark."""
