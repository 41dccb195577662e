"""Command-line interfaces for To Concentrate."""
