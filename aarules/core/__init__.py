"""Configuration, trace model, encoding and chain-state collaborators."""
