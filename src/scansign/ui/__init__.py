"""User interfaces for scansign."""
