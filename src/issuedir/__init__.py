"""issuedir - a local, file-backed issue tracker for the command line."""
