"""Mirror tree path resolution and synchronization."""
