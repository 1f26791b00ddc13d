"""Command line tools for inspecting snapshot files."""
