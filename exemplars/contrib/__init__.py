"""Optional tooling built on the exemplars core."""
