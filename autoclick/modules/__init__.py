"""Domain modules of autoclick."""
