"""Configuration, logging and command execution shared by all
workflows."""
