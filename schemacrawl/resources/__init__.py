"""Resources bundled with the package."""
