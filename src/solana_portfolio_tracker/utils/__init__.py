"""HTTP helpers and display formatting."""
