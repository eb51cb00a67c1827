"""skill-composer - select and compose guidance bundles for a task."""
