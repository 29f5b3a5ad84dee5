"""Models, errors and pure parsing/indexing helpers for the package catalog."""
