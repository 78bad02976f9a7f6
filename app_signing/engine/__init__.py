"""Build engine: the gates around credential resolution and the build runner."""
