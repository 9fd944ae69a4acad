"""Production cost calculator for 3D printing jobs, with local storage."""
