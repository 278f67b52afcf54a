"""HTTP entry layer: dependencies and route definitions."""
