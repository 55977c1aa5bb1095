"""Load CSV files and render pie and line charts."""
