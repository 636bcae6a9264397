"""logging subpackage."""
