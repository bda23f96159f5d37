"""Plain-text report rendering for the CLI and saved trade blueprints."""
