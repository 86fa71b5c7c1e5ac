"""Version control integration."""
