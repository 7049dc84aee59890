"""attachtree: a browsable symlink mirror of outline attachment directories."""
