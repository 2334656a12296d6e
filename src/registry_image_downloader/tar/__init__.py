"""Tar archive encoding for docker-load compatible images."""
