"""Domain services for the contact pipeline."""
