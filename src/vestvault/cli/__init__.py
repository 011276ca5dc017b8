"""Command-line tools for inspecting release schedules."""
