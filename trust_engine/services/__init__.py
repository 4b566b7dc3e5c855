"""Trust Engine - domain services and external collaborators."""
