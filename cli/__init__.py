"""Command line host for the erosion simulator."""
