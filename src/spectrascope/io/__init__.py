"""Audio loading and feature export."""
