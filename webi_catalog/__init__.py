"""
Package catalog service for the WebInstall UI.

This package is responsible for:
* Reading the webi-installers repository tree from the GitHub REST API.
* Fetching and decoding per-package README files.
* Parsing README frontmatter into typed package records.
* Serving search, filter and statistics queries from an in-memory catalog.
"""
