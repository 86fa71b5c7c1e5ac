"""Update workflow."""
