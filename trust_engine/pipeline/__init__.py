"""Trust Engine - contribution submission pipeline."""
