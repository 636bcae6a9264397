"""pipeline.tasks subpackage."""
