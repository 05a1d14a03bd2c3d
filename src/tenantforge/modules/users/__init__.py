"""Users module - tenant owners and their payment state."""
