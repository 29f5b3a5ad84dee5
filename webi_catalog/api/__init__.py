"""HTTP routers exposing the package catalog to the UI."""
