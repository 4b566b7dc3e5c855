"""Trust Engine - core errors, logging and models."""
