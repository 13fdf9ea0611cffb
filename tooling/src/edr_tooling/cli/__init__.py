"""`edr` command line: build, pack, install, targets."""
