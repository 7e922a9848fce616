"""VIGIL command line interface."""
